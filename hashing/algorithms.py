"""RetroAchievements hashing rules for cartridge and file-based platforms.

Every function here returns a 32-character lowercase MD5 hex digest. Disc
based platforms are not handled here; they go through RAHasher (see
rahasher.py).
"""

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536  # 64KB chunks

# Nintendo 64 dumps come in three byte orders, identified by extension
N64_BIG_ENDIAN_EXTENSIONS = {".z64"}
N64_SWAPPED_EXTENSIONS = {".v64", ".n64"}

# Reading as ASCII turns every byte above 0x7F into '?'
_ASCII_ONLY = bytes(range(128)) + b"?" * 128
_UTF8_BOM = b"\xef\xbb\xbf"


@dataclass(frozen=True)
class HeaderSignature:
    """How to detect a copier/emulator header that must be skipped.

    Either ``magic`` is set (the file starts with those bytes) or
    ``size_modulus`` is set (``length % size_modulus == skip``). In both
    cases the header is ``skip`` bytes long.
    """

    skip: int
    magic: Optional[bytes] = None
    size_modulus: Optional[int] = None

    def __post_init__(self):
        if (self.magic is None) == (self.size_modulus is None):
            raise ValueError("HeaderSignature needs exactly one of magic or size_modulus")


def _digest_stream(f, hasher=None) -> str:
    hasher = hasher or hashlib.md5()
    for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
        hasher.update(chunk)
    return hasher.hexdigest()


def hash_bytes(data: bytes) -> str:
    """MD5 of an in-memory buffer."""
    return hashlib.md5(data).hexdigest()


def hash_whole_file(file_path: str | Path) -> str:
    """Hash the entire file contents."""
    return hash_from_offset(file_path, 0)


def hash_from_offset(file_path: str | Path, offset: int) -> str:
    """Hash a file starting at ``offset``.

    The offset is only applied when the file is longer than it; shorter
    files are hashed from the start.
    """
    with open(file_path, "rb") as f:
        if offset > 0:
            size = f.seek(0, 2)
            f.seek(offset if size > offset else 0)
        return _digest_stream(f)


def file_starts_with(file_path: str | Path, expected: bytes) -> bool:
    """Check whether a file begins with the given byte sequence."""
    with open(file_path, "rb") as f:
        return f.read(len(expected)) == expected


def header_skip_offset(file_path: str | Path, signature: HeaderSignature) -> int:
    """Work out how many header bytes to skip before hashing.

    Args:
        file_path: ROM file to inspect
        signature: Header rule for the ROM's platform

    Returns:
        ``signature.skip`` if the header is present, otherwise 0
    """
    size = Path(file_path).stat().st_size
    if size <= signature.skip:
        return 0

    if signature.magic is not None:
        if file_starts_with(file_path, signature.magic):
            return signature.skip
        return 0

    if size % signature.size_modulus == signature.skip:
        return signature.skip

    # No header detected, hash as-is
    return 0


def hash_with_header_skip(
    file_path: str | Path, signature: Optional[HeaderSignature]
) -> str:
    """Hash a ROM, skipping its header when the platform's rule detects one.

    A platform routed here without a signature gets its whole file hashed.
    """
    if signature is None:
        logger.warning(
            "No header signature for %s, hashing entire file", Path(file_path).name
        )
        return hash_whole_file(file_path)

    offset = header_skip_offset(file_path, signature)
    logger.debug("Header skip for %s: %d bytes", Path(file_path).name, offset)
    return hash_from_offset(file_path, offset)


def hash_filename(file_path: str | Path) -> str:
    """Hash the file name without directory or extension (arcade sets).

    The file contents are never read.
    """
    return hash_bytes(Path(file_path).stem.encode("utf-8"))


def hash_normalized_text(file_path: str | Path) -> str:
    """Hash a text ROM (Arduboy .hex) with CRLF line endings folded to LF."""
    data = Path(file_path).read_bytes()
    if data.startswith(_UTF8_BOM):
        data = data[len(_UTF8_BOM):]
    text = data.translate(_ASCII_ONLY)
    # ASCII text re-encodes to identical UTF-8 bytes
    return hash_bytes(text.replace(b"\r\n", b"\n"))


def swap_byte_pairs(data: bytes) -> bytes:
    """Swap every adjacent pair of bytes (01 02 03 04 -> 02 01 04 03).

    A trailing unpaired byte is left where it is.
    """
    even = len(data) - len(data) % 2
    swapped = bytearray(data)
    swapped[0:even:2] = data[1:even:2]
    swapped[1:even:2] = data[0:even:2]
    return bytes(swapped)


def hash_n64(file_path: str | Path) -> str:
    """Hash a Nintendo 64 ROM in big-endian (.z64) byte order.

    .v64 and .n64 dumps are pair-swapped before hashing. Any other extension
    is assumed to already be big-endian.
    """
    ext = Path(file_path).suffix.lower()
    if ext in N64_SWAPPED_EXTENSIONS:
        return hash_bytes(swap_byte_pairs(Path(file_path).read_bytes()))
    if ext not in N64_BIG_ENDIAN_EXTENSIONS:
        logger.debug("Unknown N64 extension %s, hashing as big-endian", ext or "(none)")
    return hash_whole_file(file_path)
