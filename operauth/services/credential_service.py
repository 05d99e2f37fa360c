# --- File: operauth/services/credential_service.py ---
import ipaddress
import logging
import re
from typing import Callable, Optional

from sqlalchemy.orm import Session

from operauth.core.exceptions import TransportPolicyError
from operauth.core.session import OperSession
from operauth.db.base import SessionLocal
from operauth.db.models.oper import OperBlock
from operauth.schemas.challenge import DenyReason
from operauth.schemas.credential import OperCredential, RsaKeyMaterial, X25519KeyMaterial
from operauth.services import key_service

logger = logging.getLogger(__name__)

CredentialResolver = Callable[[str, str, str, str], Optional[OperCredential]]


def mask_match(mask: str, value: str) -> bool:
    """Case-insensitive wildcard match where * is any run and ? is one character"""
    pattern = re.escape(mask).replace(r"\*", ".*").replace(r"\?", ".")
    return re.fullmatch(pattern, value or "", flags=re.IGNORECASE | re.DOTALL) is not None


def cidr_match(mask: str, address: str) -> bool:
    """True when `mask` is a CIDR network (e.g. 192.0.2.0/24) containing `address`"""
    if "/" not in mask:
        return False
    try:
        network = ipaddress.ip_network(mask, strict=False)
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return ip.version == network.version and ip in network


def host_matches(mask: str, orig_host: str, presented_host: str) -> bool:
    if mask_match(mask, orig_host) or mask_match(mask, presented_host):
        return True
    return cidr_match(mask, presented_host)


def _to_credential(block: OperBlock) -> OperCredential:
    key = None
    try:
        # X25519 takes priority when both are configured
        if block.x25519_public_key:
            key = X25519KeyMaterial(public_key=key_service.load_x25519_public_key(block.x25519_public_key))
        elif block.rsa_public_key:
            key = RsaKeyMaterial(public_key=key_service.load_rsa_public_key(block.rsa_public_key))
    except ValueError as e:
        logger.error(f"Ignoring unusable public key on oper block {block.name}: {str(e)}")
        key = None

    return OperCredential(
        name=block.name,
        key=key,
        need_ssl=block.need_ssl,
        certfp=key_service.normalize_fingerprint(block.certfp)
    )


def register_oper(
    db: Session,
    name: str,
    user_mask: str = "*",
    host_mask: str = "*",
    rsa_public_key: Optional[str] = None,
    x25519_public_key: Optional[str] = None,
    need_ssl: bool = False,
    certfp: Optional[str] = None
) -> OperBlock:
    """
    Add an oper block. Keys are parsed up front so a bad key is rejected here
    rather than at challenge time.
    """
    if rsa_public_key:
        key_service.load_rsa_public_key(rsa_public_key)
    if x25519_public_key:
        key_service.load_x25519_public_key(x25519_public_key)

    block = OperBlock(
        name=name,
        user_mask=user_mask,
        host_mask=host_mask,
        rsa_public_key=rsa_public_key,
        x25519_public_key=x25519_public_key,
        need_ssl=need_ssl,
        certfp=key_service.normalize_fingerprint(certfp)
    )
    db.add(block)
    db.commit()
    db.refresh(block)
    logger.info(f"Registered oper block {name} for {user_mask}@{host_mask}")
    return block


def remove_oper(db: Session, name: str) -> int:
    removed = db.query(OperBlock).filter(OperBlock.name == name).delete()
    db.commit()
    logger.info(f"Removed {removed} oper block(s) named {name}")
    return removed


def resolve_credential(db: Session, username: str, orig_host: str, presented_host: str, identity: str) -> Optional[OperCredential]:
    """
    Find the first oper block named `identity` whose user mask matches `username`
    and whose host mask matches either the original or the presented host,
    or is a CIDR network containing the presented address.
    """
    blocks = db.query(OperBlock).filter(OperBlock.name == identity).order_by(OperBlock.id).all()
    for block in blocks:
        if not mask_match(block.user_mask, username):
            continue
        if host_matches(block.host_mask, orig_host, presented_host):
            return _to_credential(block)
    return None


def authorize(credential: OperCredential, session: OperSession) -> None:
    """
    Apply the credential's transport requirements to the session.
    Raises TransportPolicyError with the matching DenyReason.
    """
    if credential.need_ssl and not session.secure:
        raise TransportPolicyError("Oper block requires a secure connection", reason=DenyReason.SSL_REQUIRED)

    if credential.certfp is not None:
        presented = key_service.normalize_fingerprint(session.certfp)
        if presented is None or presented != key_service.normalize_fingerprint(credential.certfp):
            raise TransportPolicyError("Client certificate fingerprint mismatch", reason=DenyReason.CERTFP_MISMATCH)


class SqlCredentialResolver:
    """Credential lookup backed by the oper_blocks table, one DB session per lookup"""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def __call__(self, username: str, orig_host: str, presented_host: str, identity: str) -> Optional[OperCredential]:
        db = self.session_factory()
        try:
            return resolve_credential(db, username, orig_host, presented_host, identity)
        finally:
            db.close()
