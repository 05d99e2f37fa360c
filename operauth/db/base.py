# --- File: operauth/db/base.py ---
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base
from operauth.core.config import settings


def connect_args_for(database_url: str) -> dict:
    # Verification runs on whichever thread owns the client session
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"check_same_thread": False}
    return {}


def make_engine(database_url: str, **kwargs):
    return create_engine(database_url, connect_args=connect_args_for(database_url), **kwargs)


engine = make_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None):
    # Models must be imported before create_all sees their tables
    from operauth.db.models import oper  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
