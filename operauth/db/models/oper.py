# --- File: operauth/db/models/oper.py ---
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime
from sqlalchemy.sql import func
from operauth.db.base import Base

class OperBlock(Base):
    __tablename__ = "oper_blocks"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    user_mask = Column(String, nullable=False, default="*")
    host_mask = Column(String, nullable=False, default="*")
    rsa_public_key = Column(Text, nullable=True)  # PEM
    x25519_public_key = Column(Text, nullable=True)  # base64 of the raw 32 bytes, or PEM
    need_ssl = Column(Boolean, default=False, nullable=False)
    certfp = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
