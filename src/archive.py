"""Extraction of pacman sync database archives (``<repo>.db``)."""

from __future__ import annotations

import bz2
import gzip
import lzma
import shutil
import sys
import tarfile
import tempfile
from pathlib import Path, PurePosixPath
from typing import BinaryIO

import zstandard


GZIP_MAGIC = b"\x1f\x8b"
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"
XZ_MAGIC = b"\xfd7zXZ\x00"
BZIP2_MAGIC = b"BZh"

_COPY_BUFSIZE = 64 * 1024


class ArchiveExtractionError(RuntimeError):
    """Raised when a database archive cannot be read or unpacked."""

    def __init__(self, path: str | Path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = str(path)
        self.message = message


def _decompress(src: BinaryIO, dst: BinaryIO) -> None:
    """Write the decompressed content of ``src`` into ``dst``."""
    magic = src.read(6)
    src.seek(0)

    if magic.startswith(GZIP_MAGIC):
        with gzip.GzipFile(fileobj=src, mode="rb") as reader:
            shutil.copyfileobj(reader, dst, _COPY_BUFSIZE)
    elif magic.startswith(ZSTD_MAGIC):
        dctx = zstandard.ZstdDecompressor()
        dctx.copy_stream(src, dst)
    elif magic.startswith(XZ_MAGIC):
        with lzma.LZMAFile(src, mode="rb") as reader:
            shutil.copyfileobj(reader, dst, _COPY_BUFSIZE)
    elif magic.startswith(BZIP2_MAGIC):
        with bz2.BZ2File(src, mode="rb") as reader:
            shutil.copyfileobj(reader, dst, _COPY_BUFSIZE)
    else:
        # pacman accepts uncompressed databases too; tarfile rejects anything else
        shutil.copyfileobj(src, dst, _COPY_BUFSIZE)


def safe_target(dest_dir: Path, name: str) -> Path:
    """Map an entry name to a path under ``dest_dir`` or refuse it."""
    entry = PurePosixPath(name)
    if entry.is_absolute() or ".." in entry.parts:
        raise ArchiveExtractionError(name, "entry escapes the destination directory")

    root = dest_dir.resolve()
    target = (root / entry).resolve()
    if target != root and root not in target.parents:
        raise ArchiveExtractionError(name, "entry escapes the destination directory")
    return target


def _extract_member(tar: tarfile.TarFile, member: tarfile.TarInfo, dest_dir: Path) -> None:
    target = safe_target(dest_dir, member.name)
    try:
        if member.isdir():
            target.mkdir(parents=True, exist_ok=True)
        elif member.isfile():
            target.parent.mkdir(parents=True, exist_ok=True)
            reader = tar.extractfile(member)
            with open(target, "wb") as out:
                if reader is not None:
                    shutil.copyfileobj(reader, out, _COPY_BUFSIZE)
        else:
            print(f"Warning: skipping non-regular archive entry {member.name}", file=sys.stderr)
    except OSError as exc:
        raise ArchiveExtractionError(target, f"cannot write entry: {exc}") from exc


def extract_db_archive(archive_path: str | Path, dest_dir: str | Path) -> None:
    """Unpack a compressed tar archive into ``dest_dir``.

    The compression layer is removed first into an intermediate file, then the
    tar stream is walked entry by entry in order. Entries that would land
    outside ``dest_dir`` abort the extraction.
    """
    archive_path = Path(archive_path)
    dest_dir = Path(dest_dir)

    try:
        src = open(archive_path, "rb")
    except OSError as exc:
        raise ArchiveExtractionError(archive_path, f"cannot open archive: {exc}") from exc

    with src, tempfile.TemporaryFile() as tar_file:
        try:
            _decompress(src, tar_file)
        except (OSError, EOFError, lzma.LZMAError, zstandard.ZstdError) as exc:
            raise ArchiveExtractionError(archive_path, f"cannot decompress archive: {exc}") from exc
        tar_file.seek(0)

        try:
            with tarfile.open(fileobj=tar_file, mode="r|") as tar:
                for member in tar:
                    _extract_member(tar, member, dest_dir)
        except tarfile.TarError as exc:
            raise ArchiveExtractionError(archive_path, f"not a valid tar archive: {exc}") from exc
