# --- File: operauth/services/respond_service.py ---
"""
Operator side of the challenge: turn a received challenge into the response
the server expects. Used by the `respond` command and by tests acting as the
remote operator.
"""
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.asymmetric import rsa, x25519
import base64
import binascii

from operauth.services.challenge_generator import DOMAIN_TOKEN, SecretBuffer, rsa_oaep_padding


def _decode(challenge_text: str) -> bytes:
    try:
        return base64.b64decode("".join(challenge_text.split()), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Challenge is not valid base64: {str(e)}")


def solve_rsa_challenge(private_key: rsa.RSAPrivateKey, challenge_text: str) -> str:
    encrypted = _decode(challenge_text)
    with SecretBuffer(private_key.decrypt(encrypted, rsa_oaep_padding())) as secret:
        digest = hashes.Hash(hashes.SHA1())
        digest.update(bytes(secret))
        return base64.b64encode(digest.finalize()).decode('ascii')


def solve_x25519_challenge(private_key: x25519.X25519PrivateKey, challenge_text: str, domain_token: str = DOMAIN_TOKEN) -> str:
    ephemeral_public = x25519.X25519PublicKey.from_public_bytes(_decode(challenge_text))
    with SecretBuffer(private_key.exchange(ephemeral_public)) as shared:
        mac = hmac.HMAC(bytes(shared), hashes.SHA256())
        mac.update(domain_token.encode('utf-8'))
        return base64.b64encode(mac.finalize()).decode('ascii')


def solve_challenge(private_key, challenge_text: str) -> str:
    if isinstance(private_key, x25519.X25519PrivateKey):
        return solve_x25519_challenge(private_key, challenge_text)
    if isinstance(private_key, rsa.RSAPrivateKey):
        return solve_rsa_challenge(private_key, challenge_text)
    raise ValueError("Private key must be RSA or X25519")
