"""Tests for the command line interface."""

import json

import pytest

from vault_provisioner import cli
from vault_provisioner import config as settings
from vault_provisioner.engine import StateStore

POLICY = 'path "secret/*" {\n  capabilities = ["read"]\n}\n'

CONFIG = {
    "resources": [
        {"type": "vault_policy", "name": "dev", "config": {"name": "dev", "policy": POLICY}},
        {
            "type": "vault_generic_secret",
            "name": "app",
            "config": {"path": "secret/app", "data_json": '{"password": "s3cr3t"}'},
        },
    ],
}


@pytest.fixture
def paths(tmp_path):
    config_path = tmp_path / "vault.json"
    config_path.write_text(json.dumps(CONFIG))
    return config_path, tmp_path / "state.json"


@pytest.fixture
def main(paths, meta, monkeypatch):
    """Run the CLI against the in-memory Vault."""
    monkeypatch.setattr(cli.Workspace, "meta", property(lambda self: meta))
    config_path, state_path = paths

    def run(*argv):
        return cli.main(["--config", str(config_path), "--state", str(state_path), *argv])
    return run


class TestValidate:
    """Test the validate command."""

    def test_valid(self, main, capsys):
        assert main("validate") == cli.EXIT_OK
        assert "The configuration is valid (2 objects)" in capsys.readouterr().out

    def test_unsupported_type(self, main, paths, capsys):
        config_path, _ = paths
        config_path.write_text(json.dumps({"resources": [{"type": "vault_nope", "name": "x"}]}))
        assert main("validate") == cli.EXIT_ERROR
        assert "Error: unsupported resource type: vault_nope" in capsys.readouterr().err

    def test_missing_config(self, meta, monkeypatch, tmp_path, capsys):
        monkeypatch.setattr(cli.Workspace, "meta", property(lambda self: meta))
        code = cli.main(["--config", str(tmp_path / "none.json"), "validate"])
        assert code == cli.EXIT_ERROR
        assert "failed to read configuration" in capsys.readouterr().err


class TestPlanApply:
    """Test plan, apply and destroy."""

    def test_plan_detailed_exitcode(self, main, capsys):
        assert main("plan", "--detailed-exitcode") == cli.EXIT_CHANGES
        out = capsys.readouterr().out
        assert "  + vault_policy.dev" in out
        assert "s3cr3t" not in out
        assert "Plan: 2 to add, 0 to change, 0 to destroy." in out

    def test_plan_without_detailed_exitcode(self, main):
        assert main("plan") == cli.EXIT_OK

    def test_apply_then_no_changes(self, main, paths, fake_client, capsys):
        assert main("apply", "--auto-approve") == cli.EXIT_OK
        assert "Apply complete! Resources: 2 added, 0 changed, 0 destroyed." in capsys.readouterr().out
        assert fake_client.store["secret/app"] == {"password": "s3cr3t"}

        _, state_path = paths
        assert sorted(StateStore(state_path).addresses()) == [
            "vault_generic_secret.app",
            "vault_policy.dev",
        ]

        assert main("plan", "--detailed-exitcode") == cli.EXIT_OK
        assert "No changes." in capsys.readouterr().out

    def test_apply_cancelled(self, main, fake_client, monkeypatch, capsys):
        monkeypatch.setattr("builtins.input", lambda prompt: "n")
        assert main("apply") == cli.EXIT_ERROR
        assert "Apply cancelled." in capsys.readouterr().out
        assert fake_client.paths("write") == []

    def test_destroy(self, main, fake_client, capsys):
        main("apply", "-y")
        capsys.readouterr()

        assert main("destroy", "-y") == cli.EXIT_OK
        out = capsys.readouterr().out
        assert "  - vault_policy.dev" in out
        assert "Destroy complete! Resources: 0 added, 0 changed, 2 destroyed." in out
        assert "sys/policies/acl/dev" not in fake_client.store

    def test_destroy_empty_state(self, main, capsys):
        assert main("destroy") == cli.EXIT_OK
        assert "nothing to destroy" in capsys.readouterr().out


class TestImportAndState:
    """Test import and the state subcommands."""

    def test_import(self, main, fake_client, capsys):
        fake_client.store["sys/policies/acl/dev"] = {"policy": POLICY}
        assert main("import", "vault_policy.dev", "dev") == cli.EXIT_OK
        assert "Import successful: vault_policy.dev (dev)" in capsys.readouterr().out

    def test_import_missing(self, main, capsys):
        assert main("import", "vault_policy.dev", "dev") == cli.EXIT_ERROR
        assert "Cannot import non-existent remote object" in capsys.readouterr().err

    def test_state_list_and_show(self, main, capsys):
        main("apply", "-y")
        capsys.readouterr()

        assert main("state", "list") == cli.EXIT_OK
        assert sorted(capsys.readouterr().out.split()) == [
            "vault_generic_secret.app",
            "vault_policy.dev",
        ]

        assert main("state", "show", "vault_generic_secret.app") == cli.EXIT_OK
        out = capsys.readouterr().out
        assert "# vault_generic_secret.app" in out
        assert "id = secret/app" in out
        assert 'path = "secret/app"' in out
        assert "data_json = (sensitive value)" in out
        assert "s3cr3t" not in out

    def test_state_show_missing(self, main, capsys):
        assert main("state", "show", "vault_policy.none") == cli.EXIT_ERROR
        assert "no resource vault_policy.none in state" in capsys.readouterr().err


class TestLogLevel:
    """Test the log level taken from the environment."""

    @pytest.mark.parametrize("value,expected", [
        ("debug", "DEBUG"),
        (" warning ", "WARNING"),
        ("TRACE", "INFO"),
        ("", "INFO"),
    ])
    def test_env_log_level(self, monkeypatch, value, expected):
        monkeypatch.setenv("VAULT_PROVISIONER_LOG_LEVEL", value)
        assert settings._env_log_level("VAULT_PROVISIONER_LOG_LEVEL") == expected

    def test_invalid_env_value_does_not_break_cli(self, main, monkeypatch, capsys):
        monkeypatch.setenv("VAULT_PROVISIONER_LOG_LEVEL", "TRACE")
        monkeypatch.setattr(settings, "LOG_LEVEL", settings._env_log_level("VAULT_PROVISIONER_LOG_LEVEL"))
        assert main("validate") == cli.EXIT_OK
        assert "The configuration is valid" in capsys.readouterr().out
