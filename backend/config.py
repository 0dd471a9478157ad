# config.py
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from utils.log import get_logger

# Path to backend/.env
BASE_DIR = Path(__file__).resolve().parent
env_path = BASE_DIR / ".env"

DEFAULT_CLERK_ISSUER = "https://divine-lobster-20.clerk.accounts.dev"

logger = get_logger("config")


def _database_url_from_env() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    db_user = os.getenv("DB_USER")
    db_password = os.getenv("DB_PASSWORD")
    db_host = os.getenv("DB_HOST", "127.0.0.1")
    db_port = os.getenv("DB_PORT", "3306")
    db_name = os.getenv("DB_NAME")

    if not db_user or not db_name:
        logger.warning("DB environment variables not loaded (DB_USER=%s, DB_NAME=%s)", db_user, db_name)
    else:
        logger.info("Loaded DB config for %s on %s:%s", db_name, db_host, db_port)

    return f"mysql+pymysql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


@dataclass
class Settings:
    database_url: str
    db_echo: bool = False
    clerk_issuer: str = DEFAULT_CLERK_ISSUER
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173"])

    @property
    def jwks_url(self) -> str:
        return f"{self.clerk_issuer.rstrip('/')}/.well-known/jwks.json"

    @classmethod
    def from_env(cls, dotenv_path: Optional[Path] = env_path) -> "Settings":
        if dotenv_path is not None:
            load_dotenv(dotenv_path=dotenv_path)

        origins = os.getenv("CORS_ORIGINS", "http://localhost:5173")
        return cls(
            database_url=_database_url_from_env(),
            db_echo=os.getenv("DB_ECHO", "0").lower() in ("1", "true", "yes"),
            clerk_issuer=os.getenv("CLERK_ISSUER", DEFAULT_CLERK_ISSUER),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
