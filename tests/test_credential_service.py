"""Tests for the oper block store and credential resolution."""

import pytest

from operauth.core.exceptions import TransportPolicyError
from operauth.core.session import OperSession
from operauth.schemas.challenge import DenyReason
from operauth.schemas.credential import KeyScheme, OperCredential, RsaKeyMaterial
from operauth.services import credential_service, key_service
from operauth.services.credential_service import SqlCredentialResolver, cidr_match, mask_match


class TestMaskMatch:
    @pytest.mark.parametrize("mask,value", [
        ("*", "anything"),
        ("*.example.org", "shell.example.org"),
        ("*.EXAMPLE.org", "shell.example.ORG"),
        ("192.0.2.?", "192.0.2.7"),
        ("al*ce", "alice"),
    ])
    def test_matches(self, mask, value):
        assert mask_match(mask, value)

    @pytest.mark.parametrize("mask,value", [
        ("*.example.org", "example.org"),
        ("192.0.2.?", "192.0.2.70"),
        ("[ab]lice", "alice"),
        ("alice", "alice2"),
    ])
    def test_rejects(self, mask, value):
        assert not mask_match(mask, value)


class TestCidrMatch:
    @pytest.mark.parametrize("mask,address", [
        ("192.0.2.0/24", "192.0.2.10"),
        ("192.0.2.10/32", "192.0.2.10"),
        ("2001:db8::/32", "2001:db8::1"),
        ("192.0.2.1/24", "192.0.2.200"),
    ])
    def test_contains(self, mask, address):
        assert cidr_match(mask, address)

    @pytest.mark.parametrize("mask,address", [
        ("192.0.2.0/24", "198.51.100.1"),
        ("192.0.2.0/24", "2001:db8::1"),
        ("192.0.2.0/24", "alice.example.org"),
        ("192.0.2.*", "192.0.2.10"),
        ("not/a-network", "192.0.2.10"),
    ])
    def test_rejects(self, mask, address):
        assert not cidr_match(mask, address)


class TestResolve:
    def test_unknown_identity(self, db):
        assert credential_service.resolve_credential(db, "alice", "host", "192.0.2.1", "alice") is None

    def test_matches_original_host(self, db, rsa_public_pem):
        credential_service.register_oper(db, "alice", host_mask="*.example.org", rsa_public_key=rsa_public_pem)
        credential = credential_service.resolve_credential(db, "alice", "a.example.org", "192.0.2.1", "alice")
        assert credential.name == "alice"
        assert credential.key.scheme == KeyScheme.RSA

    def test_matches_presented_host(self, db, rsa_public_pem):
        credential_service.register_oper(db, "alice", host_mask="192.0.2.*", rsa_public_key=rsa_public_pem)
        assert credential_service.resolve_credential(db, "alice", "a.example.org", "192.0.2.1", "alice") is not None

    def test_cidr_host_mask_matches_address(self, db, rsa_public_pem):
        credential_service.register_oper(db, "alice", host_mask="192.0.2.0/24", rsa_public_key=rsa_public_pem)
        assert credential_service.resolve_credential(db, "alice", "a.example.org", "192.0.2.77", "alice") is not None
        assert credential_service.resolve_credential(db, "alice", "a.example.org", "198.51.100.7", "alice") is None

    def test_user_mask(self, db, rsa_public_pem):
        credential_service.register_oper(db, "alice", user_mask="~alice", rsa_public_key=rsa_public_pem)
        assert credential_service.resolve_credential(db, "bob", "h", "192.0.2.1", "alice") is None
        assert credential_service.resolve_credential(db, "~alice", "h", "192.0.2.1", "alice") is not None

    def test_first_matching_block_wins(self, db, rsa_public_pem):
        credential_service.register_oper(db, "alice", host_mask="*.example.com", need_ssl=True, rsa_public_key=rsa_public_pem)
        credential_service.register_oper(db, "alice", host_mask="*.example.org", rsa_public_key=rsa_public_pem)
        credential = credential_service.resolve_credential(db, "alice", "a.example.org", "192.0.2.1", "alice")
        assert credential.need_ssl is False

    def test_x25519_preferred(self, db, rsa_public_pem, x25519_private_key):
        credential_service.register_oper(
            db, "alice",
            rsa_public_key=rsa_public_pem,
            x25519_public_key=key_service.x25519_public_key_to_text(x25519_private_key.public_key()),
        )
        credential = credential_service.resolve_credential(db, "alice", "h", "192.0.2.1", "alice")
        assert credential.key.scheme == KeyScheme.X25519

    def test_certfp_normalised(self, db, rsa_public_pem):
        credential_service.register_oper(db, "alice", rsa_public_key=rsa_public_pem, certfp="AB:CD:EF")
        credential = credential_service.resolve_credential(db, "alice", "h", "192.0.2.1", "alice")
        assert credential.certfp == "abcdef"

    def test_no_key(self, db):
        credential_service.register_oper(db, "alice")
        assert credential_service.resolve_credential(db, "alice", "h", "192.0.2.1", "alice").key is None

    def test_sql_resolver(self, db, db_factory, rsa_public_pem):
        credential_service.register_oper(db, "alice", rsa_public_key=rsa_public_pem)
        resolver = SqlCredentialResolver(db_factory)
        assert resolver("alice", "h", "192.0.2.1", "alice").name == "alice"
        assert resolver("alice", "h", "192.0.2.1", "bob") is None


class TestRegister:
    def test_bad_rsa_key_rejected(self, db):
        with pytest.raises(ValueError):
            credential_service.register_oper(db, "alice", rsa_public_key="not a key")

    def test_bad_x25519_key_rejected(self, db):
        with pytest.raises(ValueError):
            credential_service.register_oper(db, "alice", x25519_public_key="c2hvcnQ=")

    def test_remove(self, db, rsa_public_pem):
        credential_service.register_oper(db, "alice", host_mask="a", rsa_public_key=rsa_public_pem)
        credential_service.register_oper(db, "alice", host_mask="b", rsa_public_key=rsa_public_pem)
        assert credential_service.remove_oper(db, "alice") == 2
        assert credential_service.resolve_credential(db, "alice", "a", "a", "alice") is None


class TestAuthorize:
    def _session(self, secure=True, certfp=None):
        return OperSession("n", "u", "h", "192.0.2.1", secure=secure, certfp=certfp)

    def _credential(self, rsa_private_key, **kwargs):
        return OperCredential(name="alice", key=RsaKeyMaterial(public_key=rsa_private_key.public_key()), **kwargs)

    def test_plain_credential(self, rsa_private_key):
        credential_service.authorize(self._credential(rsa_private_key), self._session(secure=False))

    def test_need_ssl(self, rsa_private_key):
        with pytest.raises(TransportPolicyError) as exc:
            credential_service.authorize(self._credential(rsa_private_key, need_ssl=True), self._session(secure=False))
        assert exc.value.reason == DenyReason.SSL_REQUIRED

    def test_certfp_match_ignores_case_and_colons(self, rsa_private_key):
        credential_service.authorize(self._credential(rsa_private_key, certfp="abcdef"), self._session(certfp="AB:CD:EF"))

    def test_certfp_mismatch(self, rsa_private_key):
        with pytest.raises(TransportPolicyError) as exc:
            credential_service.authorize(self._credential(rsa_private_key, certfp="abcdef"), self._session(certfp="abcdee"))
        assert exc.value.reason == DenyReason.CERTFP_MISMATCH
