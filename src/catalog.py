"""Build the package catalog out of pacman's sync and local databases."""

from __future__ import annotations

import sys
import tempfile
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Mapping, Optional

from archive import ArchiveExtractionError, extract_db_archive, safe_target
from desc_parser import FATAL, MalformedRecordError, read_desc_file
from models import PackageRecord
from pacman_conf import RepositoryConfig


ALL_REPOS = "*all*"
DEFAULT_TEMP_ROOT = Path(tempfile.gettempdir()) / "karun"
MAX_TEMP_DIR_ATTEMPTS = 9


def create_temp_dir(root: str | Path | None = None) -> Path:
    """Create a fresh, uniquely named directory under ``root``."""
    root = Path(root) if root is not None else DEFAULT_TEMP_ROOT
    for _ in range(MAX_TEMP_DIR_ATTEMPTS):
        candidate = root / str(uuid.uuid4())
        if candidate.exists():
            continue
        root.mkdir(parents=True, exist_ok=True)
        try:
            candidate.mkdir(mode=0o700)
        except FileExistsError:
            continue
        return candidate
    raise OSError(f"Failed to create a unique temporary directory under {root}")


class PackageCollection:
    """Catalog of packages for one repository or for all of them.

    Everything happens in the constructor: the sync archives are unpacked into
    a private temporary directory, their package entries are read, and the
    local database is merged in. Afterwards ``collection`` is a read-only
    name to PackageRecord mapping.
    """

    def __init__(
        self,
        repo: str,
        config: RepositoryConfig,
        *,
        db_path: str | Path | None = None,
        temp_root: str | Path | None = None,
        strict: bool = False,
        max_workers: int = 1,
    ):
        self.repo = repo
        self.config = config
        self.db_path = Path(db_path if db_path is not None else config.db_path)
        self.strict = strict
        self.max_workers = max(1, int(max_workers))
        self._collection: Dict[str, PackageRecord] = {}
        self._errors: List[dict[str, str]] = []

        self.workspace = create_temp_dir(temp_root)
        self._extract_all(self.repos)
        for name in self.repos:
            self._add_sync_packages(name)
        self._add_local_packages(only_matches=not self.is_all_repos)

    # ---- Public accessors ----

    @property
    def is_all_repos(self) -> bool:
        return self.repo == ALL_REPOS

    @property
    def repos(self) -> List[str]:
        """Repositories this collection covers, in processing order."""
        if self.is_all_repos:
            return list(self.config.repos)
        return [self.repo]

    @property
    def collection(self) -> Mapping[str, PackageRecord]:
        return MappingProxyType(self._collection)

    @property
    def errors(self) -> List[dict[str, str]]:
        return list(self._errors)

    def consume_errors(self) -> List[dict[str, str]]:
        errors = list(self._errors)
        self._errors = []
        return errors

    def get(self, name: str) -> Optional[PackageRecord]:
        return self._collection.get(name)

    def __len__(self) -> int:
        return len(self._collection)

    def __iter__(self) -> Iterator[PackageRecord]:
        return iter(list(self._collection.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._collection

    # ---- Extraction ----

    def repo_dir(self, repo: str) -> Path:
        """Extraction directory of ``repo``, refusing names that leave the workspace."""
        if not repo or "/" in repo or repo in (".", ".."):
            raise ArchiveExtractionError(repo, "invalid repository name")
        return safe_target(self.workspace, repo)

    def sync_archive_path(self, repo: str) -> Path:
        return self.db_path / "sync" / f"{repo}.db"

    def extract_db_archive(self, repo: str) -> bool:
        """Unpack one repository's sync database into the workspace.

        Returns False without touching anything when the repository has
        already been extracted.
        """
        target = self.repo_dir(repo)
        if target.exists():
            return False
        target.mkdir()
        extract_db_archive(self.sync_archive_path(repo), target)
        return True

    def _extract_all(self, repos: List[str]) -> None:
        # Duplicate section names would race on the same directory
        unique = list(dict.fromkeys(repos))
        if self.max_workers == 1 or len(unique) < 2:
            for name in unique:
                self.extract_db_archive(name)
            return

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(self.extract_db_archive, name) for name in unique]
            for future in futures:
                future.result()

    # ---- Population ----

    def _record_error(self, path: str, message: str) -> None:
        print(f"Warning: skipping package {path}: {message}", file=sys.stderr)
        self._errors.append({"path": path, "message": message})

    def _traverse_pkg_dir(self, directory: Path, action: Callable[[PackageRecord], None]) -> None:
        """Parse every package directory directly below ``directory``."""
        if not directory.is_dir():
            return
        for entry in sorted(directory.iterdir()):
            if not entry.is_dir():
                continue
            result = read_desc_file(entry / "desc", strict=self.strict)
            if result.ok:
                action(result.record)
            elif result.status == FATAL:
                raise MalformedRecordError(result.path, result.reason)
            else:
                self._record_error(result.path, result.reason)

    def _add_sync_packages(self, repo: str) -> None:
        def _insert(pkg: PackageRecord) -> None:
            self._collection[pkg.name] = replace(pkg, repo=repo)

        self._traverse_pkg_dir(self.repo_dir(repo), _insert)

    def _add_local_packages(self, only_matches: bool) -> None:
        def _merge(pkg: PackageRecord) -> None:
            existing = self._collection.get(pkg.name)
            if existing is not None:
                self._collection[pkg.name] = replace(existing, local_version=pkg.repo_version)
            elif not only_matches:
                self._collection[pkg.name] = replace(pkg, repo="", local_version=pkg.repo_version)

        self._traverse_pkg_dir(self.db_path / "local", _merge)
