# --- File: operauth/schemas/__init__.py ---
from .credential import (
    KeyScheme,
    KeyMaterial,
    RsaKeyMaterial,
    X25519KeyMaterial,
    OperCredential
)
from .challenge import (
    ChallengeArtifact,
    PendingChallenge,
    DenyReason,
    ChallengeStatus,
    ChallengeOutcome,
    VerifyStatus,
    VerifyOutcome,
    AuditEvent
)

__all__ = [
    "KeyScheme",
    "KeyMaterial",
    "RsaKeyMaterial",
    "X25519KeyMaterial",
    "OperCredential",
    "ChallengeArtifact",
    "PendingChallenge",
    "DenyReason",
    "ChallengeStatus",
    "ChallengeOutcome",
    "VerifyStatus",
    "VerifyOutcome",
    "AuditEvent"
]
