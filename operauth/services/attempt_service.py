# --- File: operauth/services/attempt_service.py ---
import logging
from typing import Optional

from operauth.core.config import settings
from operauth.core.session import OperSession

logger = logging.getLogger(__name__)


class AttemptTracker:
    """
    Optional lockout after repeated failed challenge responses.

    With max_failures == 0 nothing is ever locked, which leaves single-attempt
    expiry as the only limit.
    """

    def __init__(self, max_failures: Optional[int] = None, lockout_seconds: Optional[int] = None):
        self.max_failures = settings.MAX_FAILED_CHALLENGES if max_failures is None else max_failures
        self.lockout_seconds = settings.CHALLENGE_LOCKOUT_SECONDS if lockout_seconds is None else lockout_seconds

    @property
    def enabled(self) -> bool:
        return self.max_failures > 0

    def is_locked(self, session: OperSession, now: float) -> bool:
        if not self.enabled or session.locked_until is None:
            return False
        if now >= session.locked_until:
            # Lockout served, start counting afresh
            session.locked_until = None
            session.failed_challenges = 0
            return False
        return True

    def record_failure(self, session: OperSession, now: float) -> None:
        if not self.enabled:
            return
        session.failed_challenges += 1
        if session.failed_challenges >= self.max_failures:
            session.locked_until = now + self.lockout_seconds
            logger.warning(
                f"{session.nick} locked out of CHALLENGE for {self.lockout_seconds}s after {session.failed_challenges} failures"
            )

    def record_success(self, session: OperSession) -> None:
        if session.failed_challenges:
            logger.info(f"Reset failed challenge count for {session.nick}")
        session.failed_challenges = 0
        session.locked_until = None
