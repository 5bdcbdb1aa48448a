"""Runtime configuration for the shelby core.

The data root is the only required input; everything else has a default and
can be overridden through the environment.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DATA_DIR_ENV = "SHELBY_DATA_DIR"
LOG_LEVEL_ENV = "SHELBY_LOG_LEVEL"
BUSY_TIMEOUT_ENV = "SHELBY_BUSY_TIMEOUT"
BUSY_RETRIES_ENV = "SHELBY_BUSY_RETRIES"
ACCOUNT_DELETE_GUARD_ENV = "SHELBY_ACCOUNT_DELETE_GUARD"

DATABASE_FILENAME = "shelby.db"
DOCUMENTS_DIRNAME = "documents"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    """Resolved settings for one data root."""

    data_root: Path
    busy_timeout: float = 5.0
    busy_retries: int = 3
    busy_backoff: float = 0.05
    orphan_grace_seconds: float = 3600.0
    log_level: str = "WARNING"
    account_delete_guard: str = "any_entry"

    @property
    def database_path(self) -> Path:
        return self.data_root / DATABASE_FILENAME

    @property
    def documents_dir(self) -> Path:
        return self.data_root / DOCUMENTS_DIRNAME

    @classmethod
    def from_env(cls, data_root: Optional[str | Path] = None) -> "Settings":
        """Build settings from an explicit root or the environment.

        Args:
            data_root: Directory holding the database file and the document
                area. If None, checks SHELBY_DATA_DIR, then defaults to
                ~/.shelby

        Returns:
            Settings instance
        """
        if data_root is None:
            data_root = os.environ.get(DATA_DIR_ENV)

        if data_root is None:
            data_root = Path.home() / ".shelby"

        return cls(
            data_root=Path(data_root).expanduser(),
            busy_timeout=float(os.environ.get(BUSY_TIMEOUT_ENV, "5")),
            busy_retries=int(os.environ.get(BUSY_RETRIES_ENV, "3")),
            log_level=os.environ.get(LOG_LEVEL_ENV, "WARNING"),
            account_delete_guard=os.environ.get(ACCOUNT_DELETE_GUARD_ENV, "any_entry"),
        )

    def ensure_directories(self) -> None:
        """Create the data root and the document area if missing."""
        self.data_root.mkdir(parents=True, exist_ok=True)
        self.documents_dir.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str = "WARNING") -> None:
    """Configure process-wide logging for the shelby loggers."""
    log_level = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
