"""Engine: configuration documents, state, planning and apply."""

from vault_provisioner.engine.config import (
    UNKNOWN,
    ConfigDocument,
    DataBlock,
    ResourceBlock,
    resolve_references,
)
from vault_provisioner.engine.state import ResourceState, StateDocument, StateStore
from vault_provisioner.engine.plan import Action, FieldChange, Plan, Planner, ResourceChange
from vault_provisioner.engine.apply import Applier, ApplySummary

__all__ = [
    "UNKNOWN",
    "ConfigDocument",
    "DataBlock",
    "ResourceBlock",
    "resolve_references",
    "ResourceState",
    "StateDocument",
    "StateStore",
    "Action",
    "FieldChange",
    "Plan",
    "Planner",
    "ResourceChange",
    "Applier",
    "ApplySummary",
]
