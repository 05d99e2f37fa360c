# --- File: operauth/services/audit_service.py ---
import logging
from typing import Callable, Optional

from operauth.core.config import settings
from operauth.schemas.challenge import AuditEvent

logger = logging.getLogger(__name__)

AuditSink = Callable[[AuditEvent], None]

# Events that represent a refused or failed attempt rather than progress
FAILURE_EVENTS = {
    "challenge_denied",
    "challenge_crypto_failure",
    "challenge_expired",
    "challenge_failed",
    "oper_denied",
}


class LoggingAuditSink:
    """
    Writes challenge activity to the `operauth.audit` log and, for failures,
    to the `operauth.notice` log that operators watch when FAILED_OPER_NOTICE
    is enabled.
    """

    def __init__(self, failed_oper_notice: Optional[bool] = None):
        self.failed_oper_notice = settings.FAILED_OPER_NOTICE if failed_oper_notice is None else failed_oper_notice
        self.audit_log = logging.getLogger("operauth.audit")
        self.notice_log = logging.getLogger("operauth.notice")

    def __call__(self, event: AuditEvent) -> None:
        who = f"{event.nick}!{event.username}@{event.host} ({event.sockhost})"
        detail = f" -- {event.reason}" if event.reason else ""

        if event.event in FAILURE_EVENTS:
            self.audit_log.warning(f"{event.event.upper()} ({event.identity}) by {who}{detail}")
            if self.failed_oper_notice:
                self.notice_log.warning(
                    f"Failed CHALLENGE attempt{detail} by {event.nick} ({event.username}@{event.host})"
                )
        else:
            self.audit_log.info(f"{event.event.upper()} ({event.identity}) by {who}{detail}")
