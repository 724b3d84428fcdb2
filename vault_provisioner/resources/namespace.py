"""vault_namespace resource: Vault Enterprise namespaces."""

import logging
from typing import Any

from vault_provisioner.consts import (
    FIELD_CUSTOM_METADATA,
    FIELD_NAMESPACE_ID,
    FIELD_PATH,
    FIELD_PATH_FQ,
    SYS_NAMESPACE_ROOT,
)
from vault_provisioner.provider import ProviderMeta, get_client, read_wrapper
from vault_provisioner.resources.common import (
    validate_no_leading_trailing_slashes,
    with_namespace,
)
from vault_provisioner.retry import (
    RetryPresets,
    poll_until,
    retry_call,
    status_code_retry_state,
)
from vault_provisioner.schema import Field, FieldType, Resource, ResourceData
from vault_provisioner.vault.exceptions import VaultError

logger = logging.getLogger(__name__)


def namespace_path(path: str) -> str:
    return f"{SYS_NAMESPACE_ROOT}{path}"


def namespace_create(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    path = d.get(FIELD_PATH)

    data: dict[str, Any] = {}
    custom_metadata, ok = d.get_ok(FIELD_CUSTOM_METADATA)
    if ok:
        data[FIELD_CUSTOM_METADATA] = custom_metadata

    logger.debug(f"Creating namespace {path}")
    client.write(namespace_path(path), data)

    d.set_id(path)
    namespace_read(d, meta)


def namespace_update(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    path = d.id

    if d.has_change(FIELD_CUSTOM_METADATA):
        old, new = d.get_change(FIELD_CUSTOM_METADATA)
        patch: dict[str, Any] = dict(new or {})
        # a null value removes the key in a merge patch
        for key in (old or {}):
            if key not in patch:
                patch[key] = None

        logger.debug(f"Patching custom metadata of namespace {path}")
        client.patch(namespace_path(path), {FIELD_CUSTOM_METADATA: patch})

    namespace_read(d, meta)


def namespace_read(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    path = d.id

    resp = client.read(namespace_path(path))
    if resp is None:
        logger.warning(f"Namespace {path!r} not found, removing from state")
        d.set_id("")
        return

    d.set(FIELD_PATH, path)
    d.set(FIELD_NAMESPACE_ID, resp.data.get("id", ""))
    d.set(FIELD_PATH_FQ, (resp.data.get("path") or "").strip("/"))
    d.set(FIELD_CUSTOM_METADATA, resp.data.get(FIELD_CUSTOM_METADATA) or {})


def namespace_delete(d: ResourceData, meta: ProviderMeta) -> None:
    """Delete the namespace and wait until Vault stops reporting it.

    Vault refuses to delete a namespace (400) while it still holds child
    objects that are being cleaned up, so the delete is retried on 400
    only. Deletion itself is asynchronous, hence the poll.

    Raises:
        RetryExhaustedException: If the delete kept failing with 400
        VaultError: If the namespace still exists after polling
    """
    client = get_client(d, meta)
    path = d.id

    logger.debug(f"Deleting namespace {path}")
    retry_call(
        client.delete,
        namespace_path(path),
        config=RetryPresets.NAMESPACE_DELETE,
        retry_if=status_code_retry_state(400),
    )

    gone = poll_until(
        lambda: client.read(namespace_path(path)) is None,
        RetryPresets.NAMESPACE_POLL,
    )
    if not gone:
        raise VaultError(f"namespace {path!r} still exists", details={"path": path})


def namespace_resource() -> Resource:
    return Resource(
        name="vault_namespace",
        schema=with_namespace({
            FIELD_PATH: Field(
                type=FieldType.STRING,
                required=True,
                force_new=True,
                validate_func=validate_no_leading_trailing_slashes,
                description="Path of the namespace.",
            ),
            FIELD_NAMESPACE_ID: Field(
                type=FieldType.STRING,
                computed=True,
                description="Namespace ID.",
            ),
            FIELD_PATH_FQ: Field(
                type=FieldType.STRING,
                computed=True,
                description="The fully qualified namespace path.",
            ),
            FIELD_CUSTOM_METADATA: Field(
                type=FieldType.MAP,
                optional=True,
                computed=True,
                elem=FieldType.STRING,
                description="Custom metadata describing this namespace.",
            ),
        }),
        create=namespace_create,
        update=namespace_update,
        read=read_wrapper(namespace_read),
        delete=namespace_delete,
        importable=True,
        description="Manages a Vault Enterprise namespace.",
    )
