"""Shared fixtures: operator keys, an in-memory credential database, a fake clock."""

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa, x25519
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from operauth.core.config import Settings
from operauth.core.session import OperSession
from operauth.db.base import init_db, make_engine
from operauth.services import key_service
from operauth.services.challenge_service import ChallengeService
from operauth.services.credential_service import SqlCredentialResolver


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingAudit:
    def __init__(self):
        self.events = []

    def __call__(self, event) -> None:
        self.events.append(event)

    def names(self):
        return [e.event for e in self.events]


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_public_pem(rsa_private_key):
    return key_service.rsa_public_key_to_pem(rsa_private_key.public_key())


@pytest.fixture
def x25519_private_key():
    return x25519.X25519PrivateKey.generate()


@pytest.fixture
def db_factory():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(db_factory):
    session = db_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def config():
    return Settings(OPER_SECURE_ONLY=False, FAILED_OPER_NOTICE=False, MAX_FAILED_CHALLENGES=0)


@pytest.fixture
def service(db_factory, clock, audit, config):
    return ChallengeService(
        resolver=SqlCredentialResolver(db_factory),
        clock=clock,
        audit=audit,
        config=config,
    )


@pytest.fixture
def client():
    return OperSession(
        nick="alice",
        username="alice",
        host="alice.example.org",
        sockhost="192.0.2.10",
        secure=True,
        certfp="AB:CD:EF:01",
    )
