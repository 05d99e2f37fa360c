# --- File: operauth/services/challenge_generator.py ---
"""
Challenge generation for the two supported operator key schemes.

RSA: a random secret is encrypted to the operator's public key with OAEP and
the expected response is the base64 SHA-1 digest of that secret.

X25519: an ephemeral key pair is generated per challenge, the challenge is the
ephemeral public key and the expected response is the base64 HMAC-SHA256 of
DOMAIN_TOKEN keyed with the shared secret.
"""
from cryptography.hazmat.primitives import hashes, hmac, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa, x25519
from cryptography.exceptions import UnsupportedAlgorithm
import base64
import logging
import secrets
from typing import Callable, Optional, Union

from operauth.core.config import settings
from operauth.core.exceptions import CryptoError
from operauth.schemas.challenge import ChallengeArtifact
from operauth.schemas.credential import RsaKeyMaterial, X25519KeyMaterial

logger = logging.getLogger(__name__)

DOMAIN_TOKEN = "solanum-challenge v1-x25519-sha256"

RandomSource = Callable[[int], bytes]


class SecretBuffer:
    """
    Mutable buffer that is zeroed when the `with` block exits, however it exits.

    Immutable copies handed to the crypto library cannot be wiped; keep them
    short-lived and never bind them to anything that outlives the call.
    """

    def __init__(self, initial: Union[int, bytes]):
        self._buf = bytearray(initial)

    def __enter__(self) -> bytearray:
        return self._buf

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def wipe(self) -> None:
        for i in range(len(self._buf)):
            self._buf[i] = 0


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def rsa_oaep_padding() -> padding.OAEP:
    # Matches OpenSSL's RSA_PKCS1_OAEP_PADDING, which is what operator tools decrypt with
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA1()),
        algorithm=hashes.SHA1(),
        label=None
    )


def generate_rsa_challenge(
    public_key: Optional[rsa.RSAPublicKey],
    secret_length: Optional[int] = None,
    random_bytes: RandomSource = secrets.token_bytes,
) -> ChallengeArtifact:
    """
    Build an RSA challenge for `public_key`.

    Raises CryptoError if no key is configured, the random source comes back
    short, or the key is too small for the secret plus OAEP overhead.
    """
    if public_key is None:
        raise CryptoError("No RSA public key configured")

    length = secret_length or settings.CHALLENGE_SECRET_LENGTH
    with SecretBuffer(length) as secret:
        try:
            secret[:] = random_bytes(length)
        except OSError as e:
            logger.error(f"Random source failed: {str(e)}")
            raise CryptoError("Failed to generate challenge") from e
        if len(secret) != length:
            logger.error(f"Random source returned {len(secret)} bytes, wanted {length}")
            raise CryptoError("Failed to generate challenge")

        try:
            digest = hashes.Hash(hashes.SHA1())
            digest.update(bytes(secret))
            expected = digest.finalize()
            encrypted = public_key.encrypt(bytes(secret), rsa_oaep_padding())
        except (ValueError, TypeError) as e:
            logger.error(f"RSA challenge encryption failed ({public_key.key_size} bit key): {str(e)}")
            raise CryptoError("Failed to generate challenge") from e

    return ChallengeArtifact(challenge_text=_b64(encrypted), expected_response=_b64(expected))


def generate_ecdh_challenge(
    domain_token: str,
    peer_public_key: Optional[x25519.X25519PublicKey],
) -> ChallengeArtifact:
    """
    Build an X25519 challenge against the operator's registered `peer_public_key`.

    The ephemeral private key and the shared secret never leave this function.
    An all-zero shared secret (low-order peer key) is rejected.
    """
    if peer_public_key is None:
        raise CryptoError("No X25519 public key configured")

    ephemeral = None
    try:
        ephemeral = x25519.X25519PrivateKey.generate()
        with SecretBuffer(ephemeral.exchange(peer_public_key)) as shared:
            if not any(shared):
                logger.error("X25519 derivation produced an all-zero shared secret")
                raise CryptoError("Failed to generate challenge")
            mac = hmac.HMAC(bytes(shared), hashes.SHA256())
            mac.update(domain_token.encode('utf-8'))
            expected = mac.finalize()

        ephemeral_public = ephemeral.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        logger.error(f"X25519 challenge derivation failed: {str(e)}")
        raise CryptoError("Failed to generate challenge") from e
    finally:
        del ephemeral

    return ChallengeArtifact(challenge_text=_b64(ephemeral_public), expected_response=_b64(expected))


def generate_challenge(
    key: Union[RsaKeyMaterial, X25519KeyMaterial, None],
    random_bytes: RandomSource = secrets.token_bytes,
) -> ChallengeArtifact:
    """Dispatch on the credential's key scheme"""
    if isinstance(key, X25519KeyMaterial):
        return generate_ecdh_challenge(DOMAIN_TOKEN, key.public_key)
    if isinstance(key, RsaKeyMaterial):
        return generate_rsa_challenge(key.public_key, random_bytes=random_bytes)
    raise CryptoError("No public key configured")
