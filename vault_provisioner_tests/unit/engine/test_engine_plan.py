"""Tests for planning."""

import pytest

from vault_provisioner.engine import Action, ConfigDocument, Planner, ResourceState, StateStore
from vault_provisioner.engine.plan import SENSITIVE, format_value, topological_order
from vault_provisioner.engine.config import UNKNOWN
from vault_provisioner.resources import new_provider
from vault_provisioner.vault.exceptions import ResourceError, VaultResponseError, VaultValidationError

POLICY = 'path "secret/*" {\n  capabilities = ["read"]\n}\n'


def policy_block(name, policy=POLICY, **extra):
    return {"type": "vault_policy", "name": name, "config": {"name": name, "policy": policy, **extra}}


def policy_state(name, policy=POLICY, resource_id=None, depends_on=()):
    return ResourceState(
        type="vault_policy",
        name=name,
        id=resource_id or name,
        attributes={"name": resource_id or name, "policy": policy, "namespace": ""},
        depends_on=list(depends_on),
    )


@pytest.fixture
def store(tmp_path):
    return StateStore(tmp_path / "state.json")


@pytest.fixture
def make_planner(meta, store):
    def factory(resources=(), data=(), provider=None):
        document = ConfigDocument.model_validate({
            "provider": provider or {},
            "resources": list(resources),
            "data": list(data),
        })
        return Planner(new_provider(), meta, document, store)
    return factory


class TestValidate:
    """Test configuration checks that run before planning."""

    def test_dependency_order(self, make_planner):
        planner = make_planner(resources=[
            {**policy_block("b"), "depends_on": ["vault_policy.a"]},
            policy_block("a"),
        ])
        order = planner.validate()
        assert order.index("vault_policy.a") < order.index("vault_policy.b")

    def test_cycle(self, make_planner):
        planner = make_planner(resources=[
            policy_block("a", policy="${vault_policy.b.policy}"),
            policy_block("b", policy="${vault_policy.a.policy}"),
        ])
        with pytest.raises(VaultValidationError, match="dependency cycle"):
            planner.validate()

    def test_undeclared_reference(self, make_planner):
        planner = make_planner(resources=[policy_block("a", policy="${vault_policy.zz.policy}")])
        with pytest.raises(VaultValidationError, match="reference to undeclared object vault_policy.zz"):
            planner.validate()

    def test_unsupported_type(self, make_planner):
        planner = make_planner(resources=[{"type": "vault_nope", "name": "x"}])
        with pytest.raises(VaultValidationError, match="unsupported resource type: vault_nope"):
            planner.validate()

    def test_invalid_block(self, make_planner):
        planner = make_planner(resources=[{"type": "vault_policy", "name": "x", "config": {"name": "x"}}])
        with pytest.raises(VaultValidationError) as excinfo:
            planner.validate()
        assert excinfo.value.details == {"errors": ["policy: required argument is missing"]}

    def test_invalid_provider_block(self, make_planner):
        planner = make_planner(provider={"adress": "http://vault"})
        with pytest.raises(VaultValidationError, match="invalid provider configuration"):
            planner.validate()

    def test_topological_order(self):
        assert topological_order({"b": ["a"], "a": []}) == ["a", "b"]


class TestPlan:
    """Test the actions computed from configuration and state."""

    def test_create(self, make_planner):
        plan = make_planner(resources=[policy_block("dev")]).plan()

        change = plan.get("vault_policy.dev")
        assert change.action == Action.CREATE
        assert [fc.key for fc in change.changes] == ["name", "policy"]
        assert plan.summary() == (1, 0, 0)
        assert plan.has_changes
        rendered = plan.render()
        assert "  + vault_policy.dev" in rendered
        assert '      name: "dev"' in rendered
        assert rendered.endswith("Plan: 1 to add, 0 to change, 0 to destroy.")

    def test_noop_after_refresh(self, make_planner, store, fake_client):
        fake_client.store["sys/policies/acl/dev"] = {"policy": POLICY}
        store.put(policy_state("dev"))

        plan = make_planner(resources=[policy_block("dev")]).plan()

        assert plan.get("vault_policy.dev").action == Action.NOOP
        assert not plan.has_changes
        assert plan.render() == "No changes. Vault matches the configuration."
        assert fake_client.paths("read") == ["sys/policies/acl/dev"]

    def test_drift_is_an_update(self, make_planner, store, fake_client):
        fake_client.store["sys/policies/acl/dev"] = {"policy": "changed"}
        store.put(policy_state("dev"))

        plan = make_planner(resources=[policy_block("dev")]).plan()

        change = plan.get("vault_policy.dev")
        assert change.action == Action.UPDATE
        assert change.resource_id == "dev"
        assert [(fc.key, fc.old, fc.new) for fc in change.changes] == [("policy", "changed", POLICY)]
        assert "  ~ vault_policy.dev" in plan.render()
        assert plan.summary() == (0, 1, 0)

    def test_refresh_drops_vanished(self, make_planner, store):
        store.put(policy_state("dev"))
        plan = make_planner(resources=[policy_block("dev")]).plan()
        assert store.get("vault_policy.dev") is None
        assert plan.get("vault_policy.dev").action == Action.CREATE

    def test_refresh_error(self, make_planner, store, fake_client):
        store.put(policy_state("dev"))
        fake_client.fail("read", "sys/policies/acl/dev", VaultResponseError("denied", status_code=500))
        with pytest.raises(ResourceError, match="vault_policy.dev: "):
            make_planner(resources=[policy_block("dev")]).plan()

    def test_force_new_is_a_replace(self, make_planner, store):
        store.put(policy_state("dev", resource_id="old"))

        plan = make_planner(resources=[policy_block("dev")]).plan(refresh=False)

        change = plan.get("vault_policy.dev")
        assert change.action == Action.REPLACE
        name_change = [fc for fc in change.changes if fc.key == "name"][0]
        assert name_change.force_new
        rendered = plan.render()
        assert "  -/+ vault_policy.dev (forces replacement)" in rendered
        assert '      name: "old" -> "dev" # forces replacement' in rendered
        assert plan.summary() == (1, 0, 1)

    def test_delete_unconfigured(self, make_planner, store):
        store.put(policy_state("gone"))

        plan = make_planner().plan(refresh=False)

        change = plan.get("vault_policy.gone")
        assert change.action == Action.DELETE
        assert change.resource_id == "gone"
        assert "  - vault_policy.gone" in plan.render()
        assert plan.summary() == (0, 0, 1)

    def test_sensitive_and_unknown_values(self, make_planner):
        plan = make_planner(resources=[{
            "type": "vault_generic_secret",
            "name": "app",
            "config": {"path": "secret/app", "data_json": '{"password": "s3cr3t"}'},
        }]).plan()

        rendered = plan.render()
        assert f"      data_json: {SENSITIVE}" in rendered
        assert "      data: (known after apply)" in rendered
        assert "s3cr3t" not in rendered

    def test_reference_to_new_resource_is_unknown(self, make_planner):
        plan = make_planner(resources=[
            policy_block("a"),
            policy_block("b", policy="${vault_policy.a.policy}"),
        ]).plan()

        change = plan.get("vault_policy.b")
        assert change.depends_on == ["vault_policy.a"]
        policy = [fc for fc in change.changes if fc.key == "policy"][0]
        assert policy.new is UNKNOWN

    def test_data_source_read_at_plan_time(self, make_planner):
        plan = make_planner(
            resources=[policy_block("dev", policy="${data.vault_policy_document.dev.hcl}")],
            data=[{
                "type": "vault_policy_document",
                "name": "dev",
                "config": {"rule": [{"path": "secret/*", "capabilities": ["read"]}]},
            }],
        ).plan()

        hcl = plan.data["data.vault_policy_document.dev"]["hcl"]
        assert hcl == 'path "secret/*" {\n  capabilities = ["read"]\n}\n'
        policy = [fc for fc in plan.get("vault_policy.dev").changes if fc.key == "policy"][0]
        assert policy.new == hcl

    def test_data_source_deferred(self, make_planner):
        plan = make_planner(
            resources=[policy_block("dev")],
            data=[{
                "type": "vault_generic_secret",
                "name": "app",
                "config": {"path": "secret/${vault_policy.dev.name}"},
            }],
        ).plan()

        assert plan.deferred_data == ["data.vault_generic_secret.app"]
        assert plan.data == {}


class TestFormatValue:
    """Test value rendering."""

    def test_values(self):
        assert format_value("a") == '"a"'
        assert format_value({"b": 1, "a": True}) == '{"a": true, "b": 1}'
        assert format_value("s3cr3t", sensitive=True) == SENSITIVE
        assert format_value(UNKNOWN, sensitive=True) == "(known after apply)"
