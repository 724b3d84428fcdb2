"""vault_policy_document data source: render rule blocks to policy HCL."""

import logging
from typing import Any

from vault_provisioner.consts import FIELD_DESCRIPTION, FIELD_HCL, FIELD_PATH, FIELD_RULE
from vault_provisioner.schema import Field, FieldType, Resource, ResourceData
from vault_provisioner.vault.exceptions import VaultValidationError
from vault_provisioner.vault.policies import (
    VALID_CAPABILITIES,
    PolicyDocument,
    PolicyRule,
)

logger = logging.getLogger(__name__)


def _validate_capabilities(value: Any, key: str) -> list[str]:
    return [
        f'{key}: invalid capability: "{cap}"'
        for cap in value
        if cap not in VALID_CAPABILITIES
    ]


def _parameter_schema() -> dict[str, Field]:
    return {
        "key": Field(type=FieldType.STRING, required=True),
        "value": Field(type=FieldType.LIST, required=True, elem=FieldType.STRING),
    }


def _rule_schema() -> dict[str, Field]:
    return {
        FIELD_PATH: Field(
            type=FieldType.STRING,
            required=True,
            description="A path in Vault that this rule applies to.",
        ),
        FIELD_DESCRIPTION: Field(type=FieldType.STRING, optional=True),
        "min_wrapping_ttl": Field(type=FieldType.STRING, optional=True),
        "max_wrapping_ttl": Field(type=FieldType.STRING, optional=True),
        "capabilities": Field(
            type=FieldType.LIST,
            required=True,
            elem=FieldType.STRING,
            validate_func=_validate_capabilities,
        ),
        "required_parameters": Field(type=FieldType.LIST, optional=True, elem=FieldType.STRING),
        "subscribe_event_types": Field(type=FieldType.LIST, optional=True, elem=FieldType.STRING),
        "allowed_parameter": Field(type=FieldType.LIST, optional=True, elem=_parameter_schema()),
        "denied_parameter": Field(type=FieldType.LIST, optional=True, elem=_parameter_schema()),
    }


def decode_parameters(blocks: list[dict[str, Any]]) -> dict[str, list[str]]:
    """Turn ``[{key, value}]`` blocks into a mapping.

    Raises:
        VaultValidationError: If a key appears twice
    """
    result: dict[str, list[str]] = {}
    for block in blocks:
        key = block["key"]
        if key in result:
            raise VaultValidationError(f"found duplicate key {key!r}")
        result[key] = list(block.get("value") or [])
    return result


def rule_from_block(block: dict[str, Any]) -> PolicyRule:
    """Build a PolicyRule from one ``rule`` block.

    Raises:
        VaultValidationError: If the path or capabilities are missing or invalid
    """
    path = block.get(FIELD_PATH)
    if not path:
        raise VaultValidationError(f"missing or invalid field: {FIELD_PATH}")
    capabilities = block.get("capabilities")
    if not capabilities:
        raise VaultValidationError("invalid or empty capabilities list, expected a list of strings")

    try:
        allowed = decode_parameters(block.get("allowed_parameter") or [])
    except VaultValidationError as e:
        raise VaultValidationError(f"error reading argument allowed_parameter: {e}") from e
    try:
        denied = decode_parameters(block.get("denied_parameter") or [])
    except VaultValidationError as e:
        raise VaultValidationError(f"error reading argument denied_parameter: {e}") from e

    try:
        return PolicyRule(
            path=path,
            description=block.get(FIELD_DESCRIPTION) or None,
            min_wrapping_ttl=block.get("min_wrapping_ttl") or None,
            max_wrapping_ttl=block.get("max_wrapping_ttl") or None,
            capabilities=list(capabilities),
            required_parameters=list(block.get("required_parameters") or []),
            subscribe_event_types=list(block.get("subscribe_event_types") or []),
            allowed_parameters=allowed,
            denied_parameters=denied,
        )
    except ValueError as e:
        raise VaultValidationError(f"invalid rule for {path}: {e}") from e


def policy_document_read(d: ResourceData, meta: Any) -> None:
    document = PolicyDocument(rules=[rule_from_block(block) for block in d.get(FIELD_RULE)])
    hcl = document.to_hcl()
    logger.debug(f"Policy HCL is: {hcl}")

    d.set(FIELD_HCL, hcl)
    d.set_id(document.hash_id())


def policy_document_data_source() -> Resource:
    return Resource(
        name="vault_policy_document",
        is_data_source=True,
        read=policy_document_read,
        schema={
            FIELD_RULE: Field(
                type=FieldType.LIST,
                optional=True,
                computed=True,
                elem=_rule_schema(),
                description="The policy rules.",
            ),
            FIELD_HCL: Field(
                type=FieldType.STRING,
                computed=True,
                description="The rules serialized as a Vault HCL policy document.",
            ),
        },
        description="Generates an ACL policy document in HCL.",
    )
