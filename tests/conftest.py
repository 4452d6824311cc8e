"""Pytest fixtures building fake pacman databases under tmp_path."""
import io
import tarfile
from pathlib import Path

import pytest
import zstandard


def desc_text(name, version, description=""):
    lines = ["%FILENAME%", f"{name}-{version}-x86_64.pkg.tar.zst", ""]
    lines += ["%NAME%", name, ""]
    lines += ["%VERSION%", version, ""]
    if description:
        lines += ["%DESC%", description, ""]
    lines += ["%ARCH%", "x86_64", ""]
    return "\n".join(lines)


def _add_bytes(tar, name, data):
    info = tarfile.TarInfo(name)
    info.size = len(data)
    tar.addfile(info, io.BytesIO(data))


def _add_dir(tar, name):
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = 0o755
    tar.addfile(info)


def tar_bytes(packages, extra_members=()):
    """Build an uncompressed sync database tar.

    ``packages`` maps package names to ``(version, description)``;
    ``extra_members`` holds raw ``(name, bytes)`` file entries.
    """
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, (version, description) in packages.items():
            pkg_dir = f"{name}-{version}"
            _add_dir(tar, pkg_dir + "/")
            _add_bytes(tar, f"{pkg_dir}/desc", desc_text(name, version, description).encode())
        for member_name, data in extra_members:
            _add_bytes(tar, member_name, data)
    return buf.getvalue()


def write_db_archive(path, packages, compression="gz", extra_members=()):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    raw = tar_bytes(packages, extra_members)
    if compression == "gz":
        import gzip
        data = gzip.compress(raw)
    elif compression == "zst":
        data = zstandard.ZstdCompressor().compress(raw)
    elif compression == "bz2":
        import bz2
        data = bz2.compress(raw)
    elif compression == "xz":
        import lzma
        data = lzma.compress(raw)
    else:
        data = raw
    path.write_bytes(data)
    return path


def write_local_package(db_root, name, version, description=""):
    pkg_dir = Path(db_root) / "local" / f"{name}-{version}"
    pkg_dir.mkdir(parents=True, exist_ok=True)
    (pkg_dir / "desc").write_text(desc_text(name, version, description))
    return pkg_dir


def write_pacman_conf(path, repos, db_path=None, cache_dir=None):
    lines = ["# pacman.conf", "[options]", "HoldPkg     = pacman glibc", "Architecture = auto"]
    if db_path is not None:
        lines.append(f"DBPath      = {db_path}")
    if cache_dir is not None:
        lines.append(f"CacheDir    = {cache_dir}")
    for repo in repos:
        lines += ["", f"[{repo}]", "Include = /etc/pacman.d/mirrorlist"]
    Path(path).write_text("\n".join(lines) + "\n")
    return Path(path)


@pytest.fixture
def db_root(tmp_path):
    root = tmp_path / "pacman"
    (root / "sync").mkdir(parents=True)
    (root / "local").mkdir(parents=True)
    return root


@pytest.fixture
def temp_root(tmp_path):
    return tmp_path / "karun-tmp"


@pytest.fixture
def pacman_db(db_root):
    """Two repositories plus a local database with one foreign package.

    core: bash 5.2, glibc 2.39
    extra: vim 9.1, bash 5.3 (also in core)
    local: bash 5.2 installed, yay 12.0 (foreign)
    """
    write_db_archive(db_root / "sync" / "core.db", {
        "bash": ("5.2-1", "The GNU Bourne Again shell"),
        "glibc": ("2.39-1", "GNU C Library"),
    })
    write_db_archive(db_root / "sync" / "extra.db", {
        "vim": ("9.1-1", "Vi Improved"),
        "bash": ("5.3-1", "Bash from extra"),
    })
    write_local_package(db_root, "bash", "5.2-1", "The GNU Bourne Again shell")
    write_local_package(db_root, "yay", "12.0-1", "Yet another yogurt")
    return db_root
