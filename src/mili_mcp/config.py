"""Server configuration read from the environment.

Values come from the process environment, optionally seeded from a ``.env``
file by :func:`load_env_file`. Every setting has a default except the Azure
DevOps token, without which ``mili_create_pr`` reports ``not_configured``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_AZURE_ORGANIZATION = "wowdesarrollos"
DEFAULT_AZURE_PROJECT = "Mili Paco"
DEFAULT_AZURE_API_VERSION = "7.1"
DEFAULT_BASE_BRANCH = "develop"

DEFAULT_DB_HOST = "localhost"
DEFAULT_DB_PORT = 3306
DEFAULT_DB_USER = "root"
DEFAULT_DB_NAME = "dblocal"


def default_log_dir() -> Path:
    return Path.home() / ".mili"


def load_env_file(path: str | Path | None = None) -> bool:
    """Load ``.env`` into ``os.environ`` without overriding variables already set.

    With no *path*, the nearest ``.env`` at or above the working directory is
    used. Returns True when a file was loaded.
    """
    dotenv_path = str(path) if path is not None else find_dotenv(usecwd=True)
    if not dotenv_path:
        return False
    loaded = load_dotenv(dotenv_path, override=False)
    if loaded:
        logger.debug("Loaded environment from %s", dotenv_path)
    return loaded


@dataclass(frozen=True)
class ServerConfig:
    azure_organization: str = DEFAULT_AZURE_ORGANIZATION
    azure_project: str = DEFAULT_AZURE_PROJECT
    azure_api_version: str = DEFAULT_AZURE_API_VERSION
    azure_token: str | None = field(default=None, repr=False)
    base_branch: str = DEFAULT_BASE_BRANCH
    db_host: str = DEFAULT_DB_HOST
    db_port: int = DEFAULT_DB_PORT
    db_user: str = DEFAULT_DB_USER
    db_password: str = field(default="", repr=False)
    db_name: str = DEFAULT_DB_NAME
    log_dir: Path = field(default_factory=default_log_dir)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ServerConfig:
        """Build a config from *env* (default ``os.environ``). Empty values count as unset."""
        env = os.environ if env is None else env

        def get(key: str) -> str | None:
            value = env.get(key, "").strip()
            return value or None

        db_port = get("DB_PORT")
        if db_port is not None and not db_port.isdigit():
            msg = f"DB_PORT must be a port number, got {db_port!r}"
            raise ValueError(msg)
        log_dir = get("MILI_LOG_DIR")
        config = cls(
            azure_organization=get("MILI_AZURE_ORGANIZATION") or DEFAULT_AZURE_ORGANIZATION,
            azure_project=get("MILI_AZURE_PROJECT") or DEFAULT_AZURE_PROJECT,
            azure_api_version=get("MILI_AZURE_API_VERSION") or DEFAULT_AZURE_API_VERSION,
            azure_token=get("AZURE_DEVOPS_TOKEN") or get("AZURE_PAT"),
            base_branch=get("MILI_BASE_BRANCH") or DEFAULT_BASE_BRANCH,
            db_host=get("DB_HOST") or DEFAULT_DB_HOST,
            db_port=int(db_port) if db_port else DEFAULT_DB_PORT,
            db_user=get("DB_USER") or DEFAULT_DB_USER,
            # The password is taken verbatim; an empty one is valid.
            db_password=env.get("DB_PASS", ""),
            db_name=get("DB_NAME") or DEFAULT_DB_NAME,
            log_dir=Path(log_dir).expanduser() if log_dir else default_log_dir(),
        )
        logger.debug("Loaded %s", config)
        return config
