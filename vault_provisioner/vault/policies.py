"""ACL policy documents for HashiCorp Vault.

This module provides pydantic models for policy rules and the HCL
renderer/parser used by the ``vault_policy_document`` data source.

Features:
- Render rules to HCL exactly as Vault stores them
- Parse rendered HCL back into rules
- Validate capabilities and parameter constraints
"""

import logging
import re
import zlib
from typing import Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

VALID_CAPABILITIES = (
    "create",
    "read",
    "update",
    "delete",
    "list",
    "sudo",
    "deny",
    "patch",
    "subscribe",
)


class PolicyValidationError(ValueError):
    """Raised when a policy rule or document is invalid."""

    pass


class PolicyRule(BaseModel):
    """Single policy rule defining access to a path."""

    path: str = Field(
        ...,
        min_length=1,
        description="Path pattern the rule applies to (supports wildcards)",
        examples=["secret/data/app/*"],
    )
    description: Optional[str] = Field(default=None, description="Rendered as a comment")
    min_wrapping_ttl: Optional[str] = Field(default=None)
    max_wrapping_ttl: Optional[str] = Field(default=None)
    capabilities: list[str] = Field(
        ...,
        min_length=1,
        description="Allowed capabilities: " + ", ".join(VALID_CAPABILITIES),
        examples=[["read", "list"]],
    )
    required_parameters: list[str] = Field(default_factory=list)
    subscribe_event_types: list[str] = Field(
        default_factory=list,
        description="Event types for the subscribe capability",
    )
    allowed_parameters: dict[str, list[str]] = Field(default_factory=dict)
    denied_parameters: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("capabilities")
    @classmethod
    def validate_capabilities(cls, v: list[str]) -> list[str]:
        """Validate capability values."""
        for cap in v:
            if cap not in VALID_CAPABILITIES:
                raise ValueError(f'invalid capability: "{cap}"')
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "path": "secret/data/app/*",
                "capabilities": ["read", "list"],
                "description": "Read access to application secrets",
                "allowed_parameters": {"ttl": ["1h", "2h"]},
            }
        }


class PolicyDocument(BaseModel):
    """An ordered list of policy rules."""

    rules: list[PolicyRule] = Field(default_factory=list)

    def to_hcl(self) -> str:
        return render_policy(self)

    def hash_id(self) -> str:
        """Stable identifier derived from the rendered HCL."""
        return str(zlib.crc32(self.to_hcl().encode("utf-8")))


def _render_list(items: list[str]) -> str:
    if items:
        return "[" + ", ".join(f'"{item}"' for item in items) + "]"
    return "[]"


def _render_parameters(params: dict[str, list[str]]) -> str:
    lines = ["{"]
    for key in sorted(params):
        lines.append(f'    "{key}" = {_render_list(params[key])}')
    lines.append("  }")
    return "\n".join(lines)


def render_rule(rule: PolicyRule) -> str:
    """Convert a PolicyRule to an HCL ``path`` block.

    Example:
        >>> print(render_rule(PolicyRule(path="secret/*", capabilities=["read"])))
        path "secret/*" {
          capabilities = ["read"]
        }
        <BLANKLINE>
    """
    lines = []
    if rule.description:
        lines.append(f"# {rule.description}")
    lines.append(f'path "{rule.path}" {{')
    lines.append(f"  capabilities = {_render_list(rule.capabilities)}")
    if rule.required_parameters:
        lines.append(f"  required_parameters = {_render_list(rule.required_parameters)}")
    if rule.subscribe_event_types:
        lines.append(f"  subscribe_event_types = {_render_list(rule.subscribe_event_types)}")
    if rule.allowed_parameters:
        lines.append(f"  allowed_parameters = {_render_parameters(rule.allowed_parameters)}")
    if rule.denied_parameters:
        lines.append(f"  denied_parameters = {_render_parameters(rule.denied_parameters)}")
    if rule.min_wrapping_ttl:
        lines.append(f'  min_wrapping_ttl = "{rule.min_wrapping_ttl}"')
    if rule.max_wrapping_ttl:
        lines.append(f'  max_wrapping_ttl = "{rule.max_wrapping_ttl}"')
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_policy(document: PolicyDocument) -> str:
    """Render a document, separating rule blocks with a blank line."""
    return "\n".join(render_rule(rule) for rule in document.rules)


_PATH_RE = re.compile(r'^path\s+"([^"]+)"\s*\{$')
_LIST_RE = re.compile(r"^(capabilities|required_parameters|subscribe_event_types)\s*=\s*\[(.*)\]$")
_TTL_RE = re.compile(r'^(min_wrapping_ttl|max_wrapping_ttl)\s*=\s*"([^"]*)"$')
_PARAMS_START_RE = re.compile(r"^(allowed_parameters|denied_parameters)\s*=\s*\{$")
_PARAM_RE = re.compile(r'^"([^"]+)"\s*=\s*\[(.*)\]$')
_QUOTED_RE = re.compile(r'"([^"]*)"')


def parse_policy(hcl: str) -> PolicyDocument:
    """Parse HCL produced by render_policy into a PolicyDocument.

    Only the subset of HCL that render_policy emits is understood; a
    comment line directly above a path block becomes its description.

    Raises:
        PolicyValidationError: If the content cannot be parsed
    """
    rules: list[PolicyRule] = []
    pending_description: Optional[str] = None
    current: Optional[dict] = None
    params_key: Optional[str] = None

    for lineno, raw in enumerate(hcl.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue

        if current is None:
            if line.startswith("#"):
                pending_description = line.lstrip("#").strip()
                continue
            path_match = _PATH_RE.match(line)
            if not path_match:
                raise PolicyValidationError(f"line {lineno}: expected path block, got {line!r}")
            current = {"path": path_match.group(1)}
            if pending_description:
                current["description"] = pending_description
            pending_description = None
            continue

        if params_key is not None:
            if line == "}":
                params_key = None
                continue
            param_match = _PARAM_RE.match(line)
            if not param_match:
                raise PolicyValidationError(f"line {lineno}: invalid parameter entry {line!r}")
            current[params_key][param_match.group(1)] = _QUOTED_RE.findall(param_match.group(2))
            continue

        if line == "}":
            try:
                rules.append(PolicyRule(**current))
            except ValueError as e:
                raise PolicyValidationError(f"invalid rule for {current['path']}: {e}") from e
            current = None
            continue

        list_match = _LIST_RE.match(line)
        if list_match:
            current[list_match.group(1)] = _QUOTED_RE.findall(list_match.group(2))
            continue
        ttl_match = _TTL_RE.match(line)
        if ttl_match:
            current[ttl_match.group(1)] = ttl_match.group(2)
            continue
        params_match = _PARAMS_START_RE.match(line)
        if params_match:
            params_key = params_match.group(1)
            current[params_key] = {}
            continue

        raise PolicyValidationError(f"line {lineno}: unexpected content {line!r}")

    if current is not None:
        raise PolicyValidationError(f"unterminated path block for {current['path']}")

    logger.debug(f"Parsed {len(rules)} policy rules")
    return PolicyDocument(rules=rules)
