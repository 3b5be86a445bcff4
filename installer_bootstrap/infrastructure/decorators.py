"""
Infrastructure-specific decorators, providing cross-cutting concerns like
retry logic for package manager operations.
"""

import logging

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from ..application.exceptions import PackageManagerBusy

logger = logging.getLogger(__name__)

# --- Constants for Retry Logic ---
_RETRY_ATTEMPTS = 3
_RETRY_MIN_WAIT_SECONDS = 5
_RETRY_MAX_WAIT_SECONDS = 30


def _log_before_retry(retry_state):
    """Log the retry attempt with details about the exception and wait time."""
    exception = retry_state.outcome.exception()
    next_attempt_in = retry_state.next_action.sleep
    logger.warning(
        f"Retrying {retry_state.fn.__name__} in {next_attempt_in:.2f}s due to "
        f"{type(exception).__name__} (attempt {retry_state.attempt_number})..."
    )


# A pre-configured decorator for package manager calls that may hit a lock
# held by unattended upgrades or another administrator.
retry_on_package_manager_lock = retry(
    stop=stop_after_attempt(_RETRY_ATTEMPTS),
    wait=wait_exponential(
        multiplier=1,
        min=_RETRY_MIN_WAIT_SECONDS,
        max=_RETRY_MAX_WAIT_SECONDS,
    ),
    retry=retry_if_exception_type(PackageManagerBusy),
    before_sleep=_log_before_retry,
    reraise=True,
)
