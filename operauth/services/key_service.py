# --- File: operauth/services/key_service.py ---
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa, x25519
from cryptography.hazmat.backends import default_backend
import base64
import binascii
import logging
from typing import Optional, Union

logger = logging.getLogger(__name__)

X25519_KEY_LENGTH = 32


def _as_bytes(data: Union[str, bytes]) -> bytes:
    return data.encode('utf-8') if isinstance(data, str) else data


def load_rsa_public_key(pem_data: Union[str, bytes]) -> rsa.RSAPublicKey:
    """
    Load an RSA public key from PEM text (SubjectPublicKeyInfo or PKCS#1)
    """
    try:
        public_key = serialization.load_pem_public_key(_as_bytes(pem_data), backend=default_backend())
    except (ValueError, TypeError) as e:
        logger.warning(f"Rejected RSA public key: {str(e)}")
        raise ValueError(f"Invalid RSA public key: {str(e)}")
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise ValueError("Public key is not an RSA key")
    return public_key


def load_x25519_public_key(data: Union[str, bytes]) -> x25519.X25519PublicKey:
    """
    Load an X25519 public key from PEM, or from the base64 of its 32 raw bytes
    """
    raw = _as_bytes(data).strip()
    if raw.startswith(b"-----BEGIN"):
        try:
            public_key = serialization.load_pem_public_key(raw, backend=default_backend())
        except (ValueError, TypeError) as e:
            logger.warning(f"Rejected X25519 public key: {str(e)}")
            raise ValueError(f"Invalid X25519 public key: {str(e)}")
        if not isinstance(public_key, x25519.X25519PublicKey):
            raise ValueError("Public key is not an X25519 key")
        return public_key

    try:
        key_bytes = base64.b64decode(raw, validate=True)
    except binascii.Error as e:
        logger.warning(f"Rejected X25519 public key: {str(e)}")
        raise ValueError(f"Invalid base64 for X25519 public key: {str(e)}")
    if len(key_bytes) != X25519_KEY_LENGTH:
        logger.warning(f"Rejected X25519 public key of {len(key_bytes)} bytes")
        raise ValueError(f"X25519 public key must be {X25519_KEY_LENGTH} bytes, got {len(key_bytes)}")
    return x25519.X25519PublicKey.from_public_bytes(key_bytes)


def rsa_public_key_to_pem(public_key: rsa.RSAPublicKey) -> str:
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')


def x25519_public_key_to_text(public_key: x25519.X25519PublicKey) -> str:
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw
    )
    return base64.b64encode(raw).decode('ascii')


def load_private_key(pem_data: Union[str, bytes], password: Optional[bytes] = None):
    """Load an operator's RSA or X25519 private key from PEM"""
    try:
        private_key = serialization.load_pem_private_key(_as_bytes(pem_data), password=password, backend=default_backend())
    except (ValueError, TypeError) as e:
        logger.warning(f"Could not load operator private key: {str(e)}")
        raise ValueError(f"Invalid private key: {str(e)}")
    if not isinstance(private_key, (rsa.RSAPrivateKey, x25519.X25519PrivateKey)):
        raise ValueError("Private key must be RSA or X25519")
    return private_key


def normalize_fingerprint(fingerprint: Optional[str]) -> Optional[str]:
    """Certificate fingerprints compare as lowercase hex without separators"""
    if fingerprint is None:
        return None
    return fingerprint.replace(":", "").strip().lower()
