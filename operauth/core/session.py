# --- File: operauth/core/session.py ---
import threading
from typing import Optional

from operauth.schemas.challenge import PendingChallenge


class OperSession:
    """
    A connected client that may attempt to become an operator.

    The session owns its pending challenge; there is no global table of
    outstanding challenges. All reads and writes of the pending challenge
    happen under `lock`.
    """

    def __init__(
        self,
        nick: str,
        username: str,
        host: str,
        sockhost: str,
        orig_host: Optional[str] = None,
        secure: bool = False,
        certfp: Optional[str] = None,
    ):
        self.nick = nick
        self.username = username
        self.host = host
        self.orig_host = orig_host or host
        self.sockhost = sockhost
        self.secure = secure
        self.certfp = certfp

        self.is_oper = False
        self.opername: Optional[str] = None

        # Failed attempt bookkeeping, used only when lockout is enabled
        self.failed_challenges = 0
        self.locked_until: Optional[float] = None

        self.lock = threading.RLock()
        self._pending: Optional[PendingChallenge] = None

    @property
    def pending(self) -> Optional[PendingChallenge]:
        with self.lock:
            return self._pending

    def set_challenge(self, pending: PendingChallenge) -> Optional[PendingChallenge]:
        """Install a new challenge, returning whatever it superseded"""
        with self.lock:
            previous = self._pending
            self._pending = pending
            return previous

    def take_challenge(self) -> Optional[PendingChallenge]:
        """Remove and return the pending challenge. Every verify goes through here."""
        with self.lock:
            pending = self._pending
            self._pending = None
            return pending

    def clear_challenge(self) -> None:
        with self.lock:
            self._pending = None

    def close(self) -> None:
        """Session teardown never leaves a challenge behind"""
        self.clear_challenge()

    def __repr__(self) -> str:
        return f"OperSession({self.nick}!{self.username}@{self.host})"
