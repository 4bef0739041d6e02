"""Runtime configuration read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_JWT_SECRET = "contave-dev-secret-change-in-production"


@dataclass(frozen=True)
class Settings:
    """Application settings.

    Every field can be set through a ``CONTAVE_*`` environment variable.
    CLI options take precedence over the environment.
    """

    database_path: Optional[str] = None
    database_url: Optional[str] = None
    jwt_secret: str = DEFAULT_JWT_SECRET
    token_hours: int = 8
    bcrypt_rounds: int = 12
    default_currency: str = "VES"
    log_level: str = "WARNING"

    def resolve_database_url(self) -> str:
        """Return the SQLAlchemy URL to connect to.

        An explicit URL wins over a SQLite path. Without either, the database
        lives in ``~/.contave/contave.db``.
        """
        if self.database_url:
            return self.database_url

        database_path = self.database_path
        if database_path is None:
            db_dir = Path.home() / ".contave"
            db_dir.mkdir(exist_ok=True)
            database_path = str(db_dir / "contave.db")

        return f"sqlite:///{database_path}"


def load_settings(environ: Optional[dict[str, str]] = None) -> Settings:
    """Build settings from environment variables.

    Args:
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        Settings instance

    Raises:
        ValueError: If a numeric variable cannot be parsed
    """
    env = os.environ if environ is None else environ

    def _int(name: str, default: int) -> int:
        raw = env.get(name)
        if raw is None or raw.strip() == "":
            return default
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"{name} must be an integer, got '{raw}'")

    return Settings(
        database_path=env.get("CONTAVE_DB_PATH"),
        database_url=env.get("CONTAVE_DATABASE_URL"),
        jwt_secret=env.get("CONTAVE_JWT_SECRET", DEFAULT_JWT_SECRET),
        token_hours=_int("CONTAVE_TOKEN_HOURS", 8),
        bcrypt_rounds=_int("CONTAVE_BCRYPT_ROUNDS", 12),
        default_currency=env.get("CONTAVE_DEFAULT_CURRENCY", "VES"),
        log_level=env.get("CONTAVE_LOG_LEVEL", "WARNING"),
    )
