"""Reader for the parts of pacman.conf the catalog needs."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple


PACMAN_CONF_PATH = "/etc/pacman.conf"
DEFAULT_DB_PATH = "/var/lib/pacman/"
DEFAULT_CACHE_DIR = "/var/cache/pacman/pkg/"
OPTIONS_SECTION = "options"


class ConfigPathError(RuntimeError):
    """Raised when pacman.conf is missing, not a file, or unreadable."""

    def __init__(self, path: str | Path):
        super().__init__(f"Cannot read pacman configuration: {path}")
        self.path = str(path)


@dataclass(frozen=True)
class RepositoryConfig:
    conf_path: str = PACMAN_CONF_PATH
    repos: Tuple[str, ...] = ()
    db_path: str = DEFAULT_DB_PATH
    cache_dir: str = DEFAULT_CACHE_DIR


def _value_after_equals(line: str) -> Optional[str]:
    if "=" not in line:
        return None
    return line.split("=", 1)[1].strip()


def read_pacman_conf(path: str | Path = PACMAN_CONF_PATH) -> RepositoryConfig:
    """Parse repository names, DBPath and CacheDir out of a pacman.conf."""
    conf = Path(path)
    if not conf.is_file() or not os.access(conf, os.R_OK):
        raise ConfigPathError(conf)

    repos: list[str] = []
    db_path = DEFAULT_DB_PATH
    cache_dir = DEFAULT_CACHE_DIR

    with open(conf, "r", encoding="utf-8", errors="replace") as f:
        for raw in f:
            line = " ".join(raw.split())
            if not line or line.startswith("#"):
                continue
            if line.startswith("[") and line.endswith("]"):
                section = line[1:-1]
                if section != OPTIONS_SECTION:
                    repos.append(section)
            elif line.startswith("DBPath"):
                value = _value_after_equals(line)
                if value is not None:
                    db_path = value
            elif line.startswith("CacheDir"):
                value = _value_after_equals(line)
                if value is not None:
                    cache_dir = value

    return RepositoryConfig(
        conf_path=str(conf),
        repos=tuple(repos),
        db_path=db_path,
        cache_dir=cache_dir,
    )


class ConfigCache:
    """Lazily parsed, shared RepositoryConfig.

    The first ``get`` parses the file; later calls reuse the result unless a
    different path is requested or ``invalidate`` has been called.
    """

    def __init__(self, default_path: str | Path = PACMAN_CONF_PATH):
        self.default_path = str(default_path)
        self._lock = threading.Lock()
        self._config: Optional[RepositoryConfig] = None

    def get(self, path: str | Path | None = None) -> RepositoryConfig:
        wanted = str(Path(path if path is not None else self.default_path))
        with self._lock:
            if self._config is None or self._config.conf_path != wanted:
                self._config = read_pacman_conf(wanted)
            return self._config

    def invalidate(self) -> None:
        with self._lock:
            self._config = None

    def is_loaded(self) -> bool:
        return self._config is not None


# Global instance
config_cache = ConfigCache()
