# --- File: operauth/core/config.py ---
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Core Project Settings
    PROJECT_NAME: str = "operauth"
    DATABASE_URL: str = "sqlite:///./operauth.db"
    SERVER_NAME: str = "irc.example.net"

    # Challenge lifetime and secret size
    CHALLENGE_EXPIRES: int = 180
    CHALLENGE_SECRET_LENGTH: int = 128
    # BUFSIZE - (NICKLEN + HOSTLEN + 12)
    CHALLENGE_LINE_WIDTH: int = 406

    # Oper policy
    OPER_SECURE_ONLY: bool = False
    FAILED_OPER_NOTICE: bool = True
    MAX_FAILED_CHALLENGES: int = 0  # 0 disables lockout
    CHALLENGE_LOCKOUT_SECONDS: int = 300

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'

settings = Settings()
