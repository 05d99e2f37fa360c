# --- File: operauth/schemas/challenge.py ---
import enum
from typing import Optional

from pydantic import BaseModel, Field


class ChallengeArtifact(BaseModel):
    challenge_text: str
    expected_response: str = Field(repr=False)

    class Config:
        frozen = True


class PendingChallenge(BaseModel):
    claimed_identity: str
    expected_response: str = Field(repr=False)
    issued_at: float

    class Config:
        frozen = True


class DenyReason(str, enum.Enum):
    SECURE_CONNECTION_REQUIRED = "secure_connection_required"
    ALREADY_OPER = "already_oper"
    NO_OPER_BLOCK = "no_oper_block"
    PK_AUTH_DISABLED = "pk_auth_disabled"
    SSL_REQUIRED = "ssl_required"
    CERTFP_MISMATCH = "certfp_mismatch"
    LOCKED_OUT = "locked_out"


class ChallengeStatus(str, enum.Enum):
    NOT_AUTHORIZED = "not_authorized"
    GENERATED = "generated"
    CRYPTO_FAILURE = "crypto_failure"


class ChallengeOutcome(BaseModel):
    status: ChallengeStatus
    reason: Optional[DenyReason] = None
    challenge_text: Optional[str] = None

    class Config:
        frozen = True

    @property
    def generated(self) -> bool:
        return self.status == ChallengeStatus.GENERATED


class VerifyStatus(str, enum.Enum):
    NOT_EXPECTING = "not_expecting"
    EXPIRED = "expired"
    MISMATCHED = "mismatched"
    REFUSED = "refused"
    AUTHORIZATION_REVOKED = "authorization_revoked"
    GRANTED = "granted"


class VerifyOutcome(BaseModel):
    status: VerifyStatus
    identity: Optional[str] = None
    reason: Optional[DenyReason] = None

    class Config:
        frozen = True

    @property
    def granted(self) -> bool:
        return self.status == VerifyStatus.GRANTED


class AuditEvent(BaseModel):
    """Structured record handed to the audit sink. Never carries key material."""
    event: str
    identity: Optional[str] = None
    reason: Optional[str] = None
    nick: str
    username: str
    host: str
    sockhost: str

    class Config:
        frozen = True
