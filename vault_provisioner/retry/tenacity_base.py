"""Tenacity integration utilities for retry logic."""

import tenacity
from tenacity import (
    retry,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential_jitter,
    wait_fixed,
)
from typing import Callable
import logging

from .config import RetryConfiguration

logger = logging.getLogger(__name__)


def get_wait_strategy(config: RetryConfiguration):
    """Create the wait strategy from configuration.

    Args:
        config: RetryConfiguration with wait parameters

    Returns:
        wait_fixed when config.fixed_delay is set, else wait_exponential_jitter
    """
    if config.fixed_delay:
        return wait_fixed(config.base_delay)
    return wait_exponential_jitter(
        initial=config.base_delay,
        max=config.max_delay,
        exp_base=config.exponential_base,
        jitter=config.jitter,
    )


def get_stop_strategy(config: RetryConfiguration):
    """Create stop strategy from configuration.

    Args:
        config: RetryConfiguration with attempt and time limits

    Returns:
        stop_after_attempt, combined with stop_after_delay when max_elapsed is set
    """
    stop = stop_after_attempt(config.max_attempts)
    if config.max_elapsed is not None:
        stop = stop | stop_after_delay(config.max_elapsed)
    return stop


def before_sleep_log(
    retry_state: tenacity.RetryCallState,
    logger: logging.Logger = logger,
) -> None:
    """Log before each retry attempt.

    Args:
        retry_state: Current retry state from tenacity
        logger: Logger instance to use
    """
    if retry_state.outcome is None:
        return

    exception = retry_state.outcome.exception()
    if exception:
        logger.warning(
            f"Retrying (attempt {retry_state.attempt_number}) "
            f"after exception: {type(exception).__name__}: {exception}"
        )
    else:
        logger.debug(
            f"Retrying (attempt {retry_state.attempt_number}) "
            f"after result: {retry_state.outcome.result()!r}"
        )


def get_tenacity_decorator(
    config: RetryConfiguration,
    retry_if: Callable[[tenacity.RetryCallState], bool],
) -> Callable:
    """Create a complete tenacity decorator from configuration.

    Args:
        config: Complete RetryConfiguration
        retry_if: Predicate deciding which outcomes are retried

    Returns:
        Configured tenacity decorator
    """
    return retry(
        wait=get_wait_strategy(config),
        stop=get_stop_strategy(config),
        retry=retry_if,
        before_sleep=before_sleep_log,
    )
