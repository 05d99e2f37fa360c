# --- File: operauth/schemas/credential.py ---
import enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field
from cryptography.hazmat.primitives.asymmetric import rsa, x25519


class KeyScheme(str, enum.Enum):
    RSA = "rsa"
    X25519 = "x25519"


class RsaKeyMaterial(BaseModel):
    scheme: Literal[KeyScheme.RSA] = KeyScheme.RSA
    public_key: rsa.RSAPublicKey

    class Config:
        arbitrary_types_allowed = True
        frozen = True


class X25519KeyMaterial(BaseModel):
    scheme: Literal[KeyScheme.X25519] = KeyScheme.X25519
    public_key: x25519.X25519PublicKey

    class Config:
        arbitrary_types_allowed = True
        frozen = True


KeyMaterial = Annotated[Union[RsaKeyMaterial, X25519KeyMaterial], Field(discriminator="scheme")]


class OperCredential(BaseModel):
    """
    A registered operator identity as resolved from the credential store.

    `key` is None when the oper block exists but has no public key, in which
    case challenge authentication is disabled for it.
    """
    name: str
    key: Optional[KeyMaterial] = None
    need_ssl: bool = False
    certfp: Optional[str] = None

    class Config:
        arbitrary_types_allowed = True
        frozen = True
