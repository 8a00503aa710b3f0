"""Archive handling for hashing ROMs stored inside compressed containers.

RetroAchievements hashes the ROM itself, not the archive, so compressed
games are unpacked into a private temp directory and the launchable file
inside is hashed instead. ZIP and 7z are unpacked; RAR is recognized as a
container but there is no backend for it, so a RAR request fails instead
of hashing the archive bytes.
"""

import asyncio
import logging
import os
import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path

import py7zr

from .temp import new_temp_directory

logger = logging.getLogger(__name__)

EXTRACTABLE_EXTENSIONS = {".zip", ".7z"}
ARCHIVE_EXTENSIONS = EXTRACTABLE_EXTENSIONS | {".rar"}

# Everything zipfile and py7zr raise for damaged, encrypted or exotic archives
_ARCHIVE_READ_ERRORS = (
    zipfile.BadZipFile,
    py7zr.exceptions.ArchiveError,
    py7zr.exceptions.PasswordRequired,
    NotImplementedError,
    RuntimeError,
    OSError,
)


class UnsafeArchiveError(ValueError):
    """An archive member would land outside the extraction directory."""


@dataclass(frozen=True)
class ArchiveMember:
    """A regular file stored in an archive."""

    name: str
    size: int  # uncompressed


def is_archive_file(filename: str | Path) -> bool:
    """True for any compressed container, including RAR."""
    return Path(filename).suffix.lower() in ARCHIVE_EXTENSIONS


def can_extract(filename: str | Path) -> bool:
    """True if the container can actually be unpacked (.zip or .7z)."""
    return Path(filename).suffix.lower() in EXTRACTABLE_EXTENSIONS


def member_destination(member_name: str, dest_dir: str) -> Path:
    """Resolve where an archive member would be written.

    Raises:
        UnsafeArchiveError: If the member name is absolute or climbs out of
            ``dest_dir`` with '..' components
    """
    root = Path(dest_dir).resolve()
    target = root.joinpath(member_name).resolve()
    if not target.is_relative_to(root):
        raise UnsafeArchiveError(
            f"Archive member '{member_name}' resolves outside {dest_dir}"
        )
    return target


def list_archive_contents(archive_path: str) -> list[ArchiveMember]:
    """
    List the regular files of a .zip or .7z archive.

    Raises:
        ValueError: If the container type can't be read
        IOError: If the archive is damaged or unreadable
    """
    ext = Path(archive_path).suffix.lower()
    if ext not in EXTRACTABLE_EXTENSIONS:
        raise ValueError(f"Cannot read {ext or 'extensionless'} archives: {archive_path}")

    try:
        if ext == ".zip":
            with zipfile.ZipFile(archive_path) as zf:
                return [
                    ArchiveMember(info.filename, info.file_size)
                    for info in zf.infolist()
                    if not info.is_dir()
                ]
        with py7zr.SevenZipFile(archive_path, "r") as szf:
            return [
                ArchiveMember(info.filename, info.uncompressed)
                for info in szf.list()
                if not info.is_directory
            ]
    except _ARCHIVE_READ_ERRORS as e:
        raise IOError(f"Could not read {archive_path}: {e}") from e


def extract_archive(archive_path: str, dest_dir: str) -> None:
    """
    Unpack a .zip or .7z archive into ``dest_dir``.

    Member names are checked before anything is written.

    Raises:
        UnsafeArchiveError: If any member would escape ``dest_dir``
        ValueError: If the container type can't be read
        IOError: If the archive is damaged or extraction fails
    """
    for member in list_archive_contents(archive_path):
        member_destination(member.name, dest_dir)

    try:
        if Path(archive_path).suffix.lower() == ".zip":
            with zipfile.ZipFile(archive_path) as zf:
                zf.extractall(path=dest_dir)
        else:
            with py7zr.SevenZipFile(archive_path, "r") as szf:
                szf.extractall(path=dest_dir)
    except _ARCHIVE_READ_ERRORS as e:
        raise IOError(f"Could not extract {archive_path}: {e}") from e


def _normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


def find_launch_file(directory: str, allowed_extensions=()) -> str | None:
    """
    Pick the file to hash from an extracted archive.

    Extensions are tried in the order given and the first matching file
    wins. Without a match (or without extensions) the first file in sorted
    path order is used.

    Args:
        directory: Extraction directory
        allowed_extensions: Launchable extensions, with or without the dot

    Returns:
        Path to the chosen file, or None if the directory holds no files
    """
    files = sorted(
        os.path.join(root, name)
        for root, _dirs, names in os.walk(directory)
        for name in names
    )
    if not files:
        return None

    for ext in allowed_extensions or ():
        wanted = _normalize_extension(ext)
        for file_path in files:
            if file_path.lower().endswith(wanted):
                return file_path

    if allowed_extensions:
        logger.debug(
            "No file matching %s in %s, using first file",
            ", ".join(allowed_extensions),
            directory,
        )
    return files[0]


def _extract_to_temp(archive_path: str, allowed_extensions) -> tuple[str | None, str | None]:
    if not can_extract(archive_path):
        logger.warning(
            "No extraction support for %s archives, cannot hash %s",
            Path(archive_path).suffix.lower(),
            archive_path,
        )
        return None, None

    temp_dir = new_temp_directory()
    try:
        extract_archive(archive_path, temp_dir)
    except (ValueError, IOError) as e:
        logger.error("Extraction of %s failed: %s", archive_path, e)
        shutil.rmtree(temp_dir, ignore_errors=True)
        return None, None

    launch_file = find_launch_file(temp_dir, allowed_extensions)
    if launch_file is None:
        logger.warning("No suitable file found in extracted archive %s", archive_path)
    return launch_file, temp_dir


async def extract_to_temp_and_get_launch_file(
    archive_path: str, allowed_extensions=()
) -> tuple[str | None, str | None]:
    """
    Unpack an archive into a fresh temp directory and find the file to hash.

    Args:
        archive_path: Path to the archive; only .zip and .7z can be unpacked
        allowed_extensions: Launchable extensions for the platform

    Returns:
        (launch_file, temp_dir). ``launch_file`` is None if nothing usable
        was found. ``temp_dir`` is set whenever files were extracted and must
        be removed by the caller; it is None only if extraction failed, in
        which case the partial directory has already been removed.
    """
    return await asyncio.to_thread(
        _extract_to_temp, archive_path, tuple(allowed_extensions or ())
    )
