"""Retry decorator utilities for Vault requests."""

from typing import Any, Callable
import logging

import tenacity

from vault_provisioner.vault.exceptions import VaultConnectionError

from .config import RetryConfiguration
from .tenacity_base import (
    before_sleep_log,
    get_tenacity_decorator,
    get_wait_strategy,
    get_stop_strategy,
)
from .exceptions import RetryExhaustedException

logger = logging.getLogger(__name__)


# Vault status codes worth retrying:
# 412 is returned while a performance standby catches up with a write
VAULT_RETRYABLE_STATUS_CODES = frozenset({
    412,  # Precondition Failed
    429,  # Too Many Requests
    500,  # Internal Server Error
    502,  # Bad Gateway
    503,  # Service Unavailable (sealed / standby)
    504,  # Gateway Timeout
})


def is_vault_retryable_error(exception: Exception) -> bool:
    """Check if a Vault error is retryable.

    Args:
        exception: Exception raised by the logical client

    Returns:
        True for connection failures and retryable status codes
    """
    if isinstance(exception, VaultConnectionError):
        return True
    status_code = getattr(exception, "status_code", None)
    return status_code in VAULT_RETRYABLE_STATUS_CODES


def is_vault_retryable_error_state(retry_state: tenacity.RetryCallState) -> bool:
    """Tenacity predicate wrapping is_vault_retryable_error."""
    if retry_state.outcome is None:
        return False

    exception = retry_state.outcome.exception()
    if exception is None:
        return False
    return is_vault_retryable_error(exception)


def status_code_retry_state(*status_codes: int) -> Callable[[tenacity.RetryCallState], bool]:
    """Build a tenacity predicate retrying only the given status codes."""
    def predicate(retry_state: tenacity.RetryCallState) -> bool:
        if retry_state.outcome is None:
            return False
        exception = retry_state.outcome.exception()
        if exception is None:
            return False
        return getattr(exception, "status_code", None) in status_codes
    return predicate


def _raise_exhausted(error: tenacity.RetryError, attempts: int) -> None:
    last_exception = error.last_attempt.exception() if error.last_attempt else None
    if last_exception is None:
        last_exception = Exception("Unknown retry error")
    raise RetryExhaustedException(
        message=f"All {attempts} retry attempts exhausted",
        attempts=attempts,
        last_exception=last_exception,
    ) from last_exception


def retry_call(
    func: Callable,
    *args: Any,
    config: RetryConfiguration,
    retry_if: Callable[[tenacity.RetryCallState], bool],
    **kwargs: Any,
) -> Any:
    """Call func with retries decided at runtime.

    Errors retry_if rejects propagate unchanged; exhausting the attempts
    raises RetryExhaustedException chained to the last error.

    Args:
        func: Callable to invoke
        config: Retry configuration
        retry_if: Tenacity predicate deciding which outcomes are retried

    Returns:
        Whatever func returns
    """
    decorated = get_tenacity_decorator(config, retry_if=retry_if)(func)
    try:
        return decorated(*args, **kwargs)
    except tenacity.RetryError as e:
        _raise_exhausted(e, config.max_attempts)


def poll_until(check: Callable[[], bool], config: RetryConfiguration) -> bool:
    """Call check until it returns True or the configuration gives up.

    Args:
        check: Zero-argument callable; exceptions it raises are not retried
        config: Retry configuration (usually fixed_delay)

    Returns:
        True if check succeeded, False if attempts ran out
    """
    retrying = tenacity.Retrying(
        wait=get_wait_strategy(config),
        stop=get_stop_strategy(config),
        retry=tenacity.retry_if_result(lambda done: not done),
        before_sleep=before_sleep_log,
        retry_error_callback=lambda retry_state: False,
    )
    return retrying(check)


def retry_until_found(
    func: Callable,
    *args: Any,
    config: RetryConfiguration,
    **kwargs: Any,
) -> Any:
    """Call func until it returns something other than None.

    Used for read-after-write against eventually consistent clusters, where
    a freshly created object may briefly read as missing or answer 412.
    Once attempts run out the last result (None) is returned.
    """
    retrying = tenacity.Retrying(
        wait=get_wait_strategy(config),
        stop=get_stop_strategy(config),
        retry=(
            tenacity.retry_if_result(lambda result: result is None)
            | status_code_retry_state(412)
        ),
        before_sleep=before_sleep_log,
        retry_error_callback=lambda retry_state: retry_state.outcome.result(),
    )
    return retrying(func, *args, **kwargs)


class RetryPresets:
    """Pre-configured retry settings for common Vault scenarios."""

    # namespace deletes fail with 400 until child objects are gone
    NAMESPACE_DELETE = RetryConfiguration(
        max_attempts=100,
        base_delay=0.5,
        max_delay=5.0,
        jitter=0.25,
        max_elapsed=30.0,
    )

    # 10 retries, 500ms apart
    NAMESPACE_POLL = RetryConfiguration(
        max_attempts=11,
        base_delay=0.5,
        fixed_delay=True,
    )

    # read-after-write against performance standbys
    CONSISTENT_READ = RetryConfiguration(
        max_attempts=11,
        base_delay=1.0,
        max_delay=1.5,
        jitter=0.5,
    )
