# --- File: operauth/core/exceptions.py ---
"""
Error taxonomy for operator challenge authentication.

None of these are fatal to the host; every one is scoped to the session that
triggered it.
"""
from typing import Optional


class OperAuthError(Exception):
    """Base class for every error raised by operauth"""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class ConfigurationError(OperAuthError):
    """No usable credential is registered for the requested identity"""


class TransportPolicyError(OperAuthError):
    """Secure-transport or client certificate requirement not met"""


class CryptoError(OperAuthError):
    """Random generation, key agreement or encryption failed"""


class ProtocolStateError(OperAuthError):
    """A response could not be accepted in the current challenge state"""

    def __init__(self, message: str, status=None):
        super().__init__(message, reason=getattr(status, "value", status))
        self.status = status
