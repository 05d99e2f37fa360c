# --- File: operauth/services/challenge_service.py ---
import base64
import binascii
import hmac
import logging
import secrets
import time
from typing import Callable, Optional

from operauth.core.config import Settings, settings
from operauth.core.exceptions import (
    ConfigurationError,
    CryptoError,
    ProtocolStateError,
    TransportPolicyError
)
from operauth.core.session import OperSession
from operauth.schemas.challenge import (
    AuditEvent,
    ChallengeOutcome,
    ChallengeStatus,
    DenyReason,
    PendingChallenge,
    VerifyOutcome,
    VerifyStatus
)
from operauth.schemas.credential import OperCredential
from operauth.services import credential_service
from operauth.services.attempt_service import AttemptTracker
from operauth.services.audit_service import AuditSink, LoggingAuditSink
from operauth.services.challenge_generator import RandomSource, generate_challenge
from operauth.services.credential_service import CredentialResolver

logger = logging.getLogger(__name__)

GrantAction = Callable[[OperSession, OperCredential], None]


def oper_up(session: OperSession, credential: OperCredential) -> None:
    session.is_oper = True
    session.opername = credential.name


def _decode_response(text: str) -> Optional[bytes]:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return None


class ChallengeService:
    """
    Issues and verifies operator challenges.

    Each session holds at most one pending challenge. Issuing replaces it and
    every response attempt consumes it, so a challenge authorizes exactly one
    verification. A correct response still needs a fresh credential lookup
    to succeed.
    """

    def __init__(
        self,
        resolver: CredentialResolver,
        clock: Callable[[], float] = time.monotonic,
        audit: Optional[AuditSink] = None,
        grant: GrantAction = oper_up,
        config: Settings = settings,
        attempts: Optional[AttemptTracker] = None,
        random_bytes: RandomSource = secrets.token_bytes,
    ):
        self.resolver = resolver
        self.clock = clock
        self.audit = audit or LoggingAuditSink(config.FAILED_OPER_NOTICE)
        self.grant = grant
        self.config = config
        self.attempts = attempts or AttemptTracker(config.MAX_FAILED_CHALLENGES, config.CHALLENGE_LOCKOUT_SECONDS)
        self.random_bytes = random_bytes

    def _record(self, event: str, session: OperSession, identity: Optional[str] = None, reason=None) -> None:
        self.audit(AuditEvent(
            event=event,
            identity=identity,
            reason=getattr(reason, "value", reason),
            nick=session.nick,
            username=session.username,
            host=session.host,
            sockhost=session.sockhost
        ))

    def _lookup(self, session: OperSession, identity: str) -> OperCredential:
        """Resolve and authorize a credential against the session as it is right now"""
        credential = self.resolver(session.username, session.orig_host, session.sockhost, identity)
        if credential is None:
            raise ConfigurationError(f"No oper block for {identity}", reason=DenyReason.NO_OPER_BLOCK)
        if credential.key is None:
            raise ConfigurationError(f"PK authentication not enabled for {identity}", reason=DenyReason.PK_AUTH_DISABLED)
        credential_service.authorize(credential, session)
        return credential

    def _session_gate(self, session: OperSession) -> Optional[DenyReason]:
        """Checks applied to every CHALLENGE line, issue or response"""
        if self.config.OPER_SECURE_ONLY and not session.secure:
            return DenyReason.SECURE_CONNECTION_REQUIRED
        if session.is_oper:
            return DenyReason.ALREADY_OPER
        return None

    def begin_challenge(self, session: OperSession, claimed_identity: str) -> ChallengeOutcome:
        with session.lock:
            refused = self._session_gate(session)
            if refused == DenyReason.SECURE_CONNECTION_REQUIRED:
                self._record("challenge_denied", session, claimed_identity, refused)
            if refused is not None:
                return ChallengeOutcome(status=ChallengeStatus.NOT_AUTHORIZED, reason=refused)

            if self.attempts.is_locked(session, self.clock()):
                self._record("challenge_denied", session, claimed_identity, DenyReason.LOCKED_OUT)
                return ChallengeOutcome(status=ChallengeStatus.NOT_AUTHORIZED, reason=DenyReason.LOCKED_OUT)

            previous = session.take_challenge()
            if previous is not None:
                logger.debug(f"Superseded pending challenge for {previous.claimed_identity} on {session.nick}")

            try:
                credential = self._lookup(session, claimed_identity)
            except (ConfigurationError, TransportPolicyError) as e:
                self._record("challenge_denied", session, claimed_identity, e.reason)
                return ChallengeOutcome(status=ChallengeStatus.NOT_AUTHORIZED, reason=e.reason)

            try:
                artifact = generate_challenge(credential.key, random_bytes=self.random_bytes)
            except CryptoError:
                logger.exception(f"Could not generate challenge for {credential.name}")
                self._record("challenge_crypto_failure", session, credential.name)
                return ChallengeOutcome(status=ChallengeStatus.CRYPTO_FAILURE)

            session.set_challenge(PendingChallenge(
                claimed_identity=credential.name,
                expected_response=artifact.expected_response,
                issued_at=self.clock()
            ))
            self._record("challenge_issued", session, credential.name, credential.key.scheme)
            return ChallengeOutcome(status=ChallengeStatus.GENERATED, challenge_text=artifact.challenge_text)

    def submit_response(self, session: OperSession, response_text: str) -> VerifyOutcome:
        with session.lock:
            pending = session.take_challenge()
            if pending is None:
                logger.debug(f"Ignoring unexpected challenge response from {session.nick}")
                return VerifyOutcome(status=VerifyStatus.NOT_EXPECTING)

            identity = pending.claimed_identity
            refused = self._session_gate(session)
            if refused is not None:
                if refused == DenyReason.SECURE_CONNECTION_REQUIRED:
                    self._record("oper_denied", session, identity, refused)
                return VerifyOutcome(status=VerifyStatus.REFUSED, identity=identity, reason=refused)

            now = self.clock()
            if now - pending.issued_at >= self.config.CHALLENGE_EXPIRES:
                self._record("challenge_expired", session, identity)
                return VerifyOutcome(status=VerifyStatus.EXPIRED, identity=identity)

            response = response_text.strip()
            if response.startswith("+"):
                response = response[1:]

            received = _decode_response(response)
            expected = base64.b64decode(pending.expected_response)
            if received is None or not hmac.compare_digest(received, expected):
                self.attempts.record_failure(session, now)
                self._record("challenge_failed", session, identity)
                return VerifyOutcome(status=VerifyStatus.MISMATCHED, identity=identity)

            try:
                credential = self._lookup(session, identity)
            except (ConfigurationError, TransportPolicyError) as e:
                self._record("oper_denied", session, identity, e.reason)
                return VerifyOutcome(status=VerifyStatus.AUTHORIZATION_REVOKED, identity=identity, reason=e.reason)

            self.attempts.record_success(session)
            self.grant(session, credential)
            self._record("oper_granted", session, credential.name)
            return VerifyOutcome(status=VerifyStatus.GRANTED, identity=credential.name)

    def abort_challenge(self, session: OperSession) -> None:
        if session.take_challenge() is not None:
            logger.debug(f"Aborted pending challenge for {session.nick}")

    def expire_stale(self, session: OperSession) -> bool:
        """Drop the session's challenge if it has already expired. Returns True if one was dropped."""
        with session.lock:
            pending = session.pending
            if pending is None or self.clock() - pending.issued_at < self.config.CHALLENGE_EXPIRES:
                return False
            session.clear_challenge()
        logger.debug(f"Swept expired challenge for {session.nick}")
        return True


def raise_for_outcome(outcome: VerifyOutcome) -> str:
    """
    Exception-style view of a VerifyOutcome: returns the granted identity or
    raises the error class that matches the failure.
    """
    if outcome.status == VerifyStatus.GRANTED:
        return outcome.identity
    if outcome.status == VerifyStatus.REFUSED and outcome.reason == DenyReason.SECURE_CONNECTION_REQUIRED:
        raise TransportPolicyError("Authentication failed", reason=outcome.reason)
    if outcome.status == VerifyStatus.AUTHORIZATION_REVOKED:
        if outcome.reason == DenyReason.NO_OPER_BLOCK or outcome.reason == DenyReason.PK_AUTH_DISABLED:
            raise ConfigurationError("Authentication failed", reason=outcome.reason)
        raise TransportPolicyError("Authentication failed", reason=outcome.reason)
    raise ProtocolStateError("Authentication failed", status=outcome.status)
