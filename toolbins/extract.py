"""Extract a tool's executable from a release archive."""

from __future__ import annotations

import io
import os
import shutil
import tarfile
import zipfile
from pathlib import Path
from typing import IO, TYPE_CHECKING, Protocol

from .assets import ArchiveFormat
from .errors import ExtractionError
from .utils import executable_name as executable_file_name
from .utils import log

if TYPE_CHECKING:
    from rich.console import Console

EXECUTABLE_SUFFIX = ".exe"
EXECUTABLE_MODE = 0o755
DEFAULT_FILE_MODE = 0o644
_OPEN_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_BINARY", 0)


class Closeable(Protocol):
    def close(self) -> None: ...


def close_quietly(resource: Closeable | None, what: str, out: Console | None = None) -> None:
    """Close ``resource``; failures are only worth a warning at this point."""
    if resource is None:
        return
    try:
        resource.close()
    except OSError as e:
        log(f"Error closing {what}: {e}", "warning", "⚠️", out=out)


def matches_executable(entry_name: str, executable_name: str) -> bool:
    """Whether an archive entry is the executable we are looking for.

    The entry's base name is compared case-insensitively, ignoring a
    trailing ``.exe``.
    """
    basename = entry_name.rstrip("/").replace("\\", "/").rsplit("/", 1)[-1]
    if basename.lower().endswith(EXECUTABLE_SUFFIX):
        basename = basename[: -len(EXECUTABLE_SUFFIX)]
    return basename.lower() == executable_name.lower()


def safe_destination(destination_dir: str | Path, entry_name: str) -> Path:
    """Join ``entry_name`` onto ``destination_dir``, refusing to leave it.

    Raises:
        ExtractionError: if the entry uses ``..`` segments or an absolute
            path that resolves outside the destination directory.

    """
    root = os.path.normpath(os.fspath(destination_dir))
    target = os.path.normpath(os.path.join(root, entry_name))
    if not target.startswith(root + os.sep):
        msg = f"Illegal file path in archive: {entry_name}"
        raise ExtractionError(msg)
    return Path(target)


def _write_executable(source: IO[bytes], path: Path, mode: int, out: Console | None) -> None:
    """Copy ``source`` into ``path`` and mark the result executable."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, _OPEN_FLAGS, mode & 0o777)
    dst = os.fdopen(fd, "wb")
    try:
        shutil.copyfileobj(source, dst)
    finally:
        close_quietly(dst, "file", out)
    # Some releases ship the binary without the executable bits
    path.chmod(EXECUTABLE_MODE)


def _extract_tar_gzip(
    stream: IO[bytes],
    executable_name: str,
    destination_dir: Path,
    target: Path,
    extracted: list[Path],
    out: Console | None,
) -> None:
    tar = None
    try:
        tar = tarfile.open(fileobj=stream, mode="r|gz")
        for member in tar:
            if not member.isfile() or not matches_executable(member.name, executable_name):
                continue
            safe_destination(destination_dir, member.name)
            if target not in extracted:
                extracted.append(target)
            source = tar.extractfile(member)
            try:
                _write_executable(source, target, member.mode, out)
            finally:
                close_quietly(source, "file in archive", out)
    except (tarfile.TarError, EOFError, OSError) as e:
        msg = f"Failed to extract tar: {e}"
        raise ExtractionError(msg) from e
    finally:
        close_quietly(tar, "archive", out)


def _discard(paths: list[Path], out: Console | None) -> None:
    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            log(f"Could not remove {path}: {e}", "warning", "⚠️", out=out)


def _zip_mode(info: zipfile.ZipInfo) -> int:
    mode = (info.external_attr >> 16) & 0o777
    return mode or DEFAULT_FILE_MODE


def _extract_zip(
    stream: IO[bytes],
    executable_name: str,
    destination_dir: Path,
    target: Path,
    extracted: list[Path],
    out: Console | None,
) -> None:
    # zip needs random access, so the body is buffered in memory
    buffer = io.BytesIO(stream.read())
    try:
        with zipfile.ZipFile(buffer) as zip_file:
            for info in zip_file.infolist():
                if info.is_dir() or not matches_executable(info.filename, executable_name):
                    continue
                safe_destination(destination_dir, info.filename)
                if target not in extracted:
                    extracted.append(target)
                source = zip_file.open(info)
                try:
                    _write_executable(source, target, _zip_mode(info), out)
                finally:
                    close_quietly(source, "file in archive", out)
    except (zipfile.BadZipFile, OSError) as e:
        msg = f"Failed to extract zip: {e}"
        raise ExtractionError(msg) from e


def extract_executable(
    stream: IO[bytes],
    archive_format: ArchiveFormat,
    executable_name: str,
    destination_dir: str | Path,
    *,
    os_name: str | None = None,
    out: Console | None = None,
) -> list[Path]:
    """Extract ``executable_name`` from an archive stream into ``destination_dir``.

    Only entries whose base name matches the executable are written; every
    other member is skipped. Whatever directory an entry sits in, it is
    written to ``destination_dir/<executable_name>`` with the ``.exe``
    suffix added on windows, the path ``executable_path`` checks. The
    stream is consumed once.

    Args:
        stream: Readable binary stream with the archive contents
        archive_format: Container format selected for the asset
        executable_name: Tool name, matched case-insensitively and
            ignoring ``.exe``
        destination_dir: Directory the executable is written to
        os_name: Target OS deciding the file name, the host OS by default
        out: Console for warnings, the shared console by default

    Returns:
        Paths of the files written. Empty when the archive does not contain
        the executable, which is not treated as an error.

    Raises:
        ExtractionError: If the archive is corrupt, an entry would escape
            ``destination_dir`` or a file cannot be written. Files already
            written by this call are removed again.

    """
    destination_dir = Path(destination_dir)
    target = destination_dir / executable_file_name(executable_name, os_name)
    if archive_format is ArchiveFormat.TAR_GZIP:
        extract = _extract_tar_gzip
    elif archive_format is ArchiveFormat.ZIP:
        extract = _extract_zip
    else:
        msg = f"Unsupported archive format: {archive_format.value}"
        raise ExtractionError(msg)

    extracted: list[Path] = []
    try:
        extract(stream, executable_name, destination_dir, target, extracted, out)
    except Exception:
        # A half-extracted tool must not look installed
        _discard(extracted, out)
        raise

    if not extracted:
        log(f"{executable_name} not found in archive", "warning", "⚠️", out=out)
    for path in extracted:
        log(f"Extracted {path}", "debug", out=out)
    return extracted
