"""Retry module for Vault requests with exponential backoff and polling."""

from .config import RetryConfiguration
from .exceptions import RetryExhaustedException
from .tenacity_base import get_tenacity_decorator
from .decorators import (
    retry_call,
    poll_until,
    retry_until_found,
    RetryPresets,
    VAULT_RETRYABLE_STATUS_CODES,
    is_vault_retryable_error,
    is_vault_retryable_error_state,
    status_code_retry_state,
)

__all__ = [
    "RetryConfiguration",
    "RetryExhaustedException",
    "get_tenacity_decorator",
    "retry_call",
    "poll_until",
    "retry_until_found",
    "RetryPresets",
    "VAULT_RETRYABLE_STATUS_CODES",
    "is_vault_retryable_error",
    "is_vault_retryable_error_state",
    "status_code_retry_state",
]
