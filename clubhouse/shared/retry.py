"""Bounded retries for idempotent reads"""

import logging

from sqlalchemy.exc import OperationalError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import READ_RETRY_ATTEMPTS

logger = logging.getLogger(__name__)

_log_retry = before_sleep_log(logger, logging.WARNING)


def _reset_session(retry_state) -> None:
    """Roll back the failed session of the service the read ran on, then log the retry"""
    owner = retry_state.args[0] if retry_state.args else None
    db = getattr(owner, "db", None)
    if db is not None:
        db.rollback()
    _log_retry(retry_state)


# Only for reads that can be repeated without side effects. Never wrap
# config reassignment or party moves with this.
retry_read = retry(
    retry=retry_if_exception_type(OperationalError),
    stop=stop_after_attempt(READ_RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=0.1, max=2),
    before_sleep=_reset_session,
    reraise=True,
)
