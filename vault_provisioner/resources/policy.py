"""vault_policy resource: ACL policies under sys/policies/acl."""

import logging

from vault_provisioner.consts import FIELD_NAME, FIELD_POLICY, SYS_POLICY_ACL_ROOT
from vault_provisioner.provider import ProviderMeta, get_client, read_wrapper
from vault_provisioner.resources.common import with_namespace
from vault_provisioner.schema import Field, FieldType, Resource, ResourceData

logger = logging.getLogger(__name__)


def policy_write(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    name = d.get(FIELD_NAME)

    logger.debug(f"Writing policy {name} to Vault")
    client.write(f"{SYS_POLICY_ACL_ROOT}{name}", {FIELD_POLICY: d.get(FIELD_POLICY)})

    d.set_id(name)
    policy_read(d, meta)


def policy_delete(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    name = d.id
    logger.debug(f"Deleting policy {name} from Vault")
    client.delete(f"{SYS_POLICY_ACL_ROOT}{name}")


def policy_read(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    name = d.id

    logger.debug(f"Reading policy {name} from Vault")
    resp = client.read(f"{SYS_POLICY_ACL_ROOT}{name}")
    if resp is None:
        logger.warning(f"Policy {name!r} not found, removing from state")
        d.set_id("")
        return

    d.set(FIELD_POLICY, resp.data.get(FIELD_POLICY, ""))
    d.set(FIELD_NAME, name)


def policy_resource() -> Resource:
    return Resource(
        name="vault_policy",
        schema=with_namespace({
            FIELD_NAME: Field(
                type=FieldType.STRING,
                required=True,
                force_new=True,
                description="Name of the policy.",
            ),
            FIELD_POLICY: Field(
                type=FieldType.STRING,
                required=True,
                description="The policy document.",
            ),
        }),
        create=policy_write,
        update=policy_write,
        read=read_wrapper(policy_read),
        delete=policy_delete,
        importable=True,
        description="Manages an ACL policy.",
    )
