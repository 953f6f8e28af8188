"""Runtime configuration loaded from the environment."""

import logging
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Default data directory
DATA_DIR = Path(__file__).parent.parent.parent / "data"


def _random_secret() -> str:
    return secrets.token_hex(32)


@dataclass
class Settings:
    """Service settings.

    Every value can be overridden with a ``GYMKEEPER_*`` environment
    variable; see :meth:`from_env`.
    """

    data_dir: Path = DATA_DIR
    secret_key: str = field(default_factory=_random_secret)
    token_ttl: int = 7 * 24 * 60 * 60  # seconds
    reset_ttl: int = 10 * 60  # seconds
    bcrypt_rounds: int = 12
    log_level: str = "INFO"
    expose_reset_token: bool = False

    @property
    def db_path(self) -> Path:
        return self.data_dir / "gymkeeper.db"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``GYMKEEPER_*`` environment variables."""
        secret_key = os.getenv("GYMKEEPER_SECRET_KEY")
        if not secret_key:
            logger.warning(
                "GYMKEEPER_SECRET_KEY is not set; tokens will not survive a restart"
            )
            secret_key = _random_secret()

        return cls(
            data_dir=Path(os.getenv("GYMKEEPER_DATA_DIR", str(DATA_DIR))),
            secret_key=secret_key,
            token_ttl=int(os.getenv("GYMKEEPER_TOKEN_TTL", 7 * 24 * 60 * 60)),
            reset_ttl=int(os.getenv("GYMKEEPER_RESET_TTL", 10 * 60)),
            bcrypt_rounds=int(os.getenv("GYMKEEPER_BCRYPT_ROUNDS", 12)),
            log_level=os.getenv("GYMKEEPER_LOG_LEVEL", "INFO").upper(),
            expose_reset_token=os.getenv("GYMKEEPER_EXPOSE_RESET_TOKEN", "").lower()
            in ("1", "true", "yes"),
        )
