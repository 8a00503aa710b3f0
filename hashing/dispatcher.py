"""Compute RetroAchievements hashes for game files.

The dispatcher resolves the platform, unpacks archives when the platform's
hash method reads file contents, runs the matching hash method and always
returns a HashResult. Nothing raised while hashing escapes ``compute``.

Usage:
    result = await compute_hash("/roms/Sonic.zip", "Sega Genesis", [".md", ".bin"])
    try:
        ...
    finally:
        cleanup_temp_directory(result.temp_directory)
"""

import asyncio
import logging
import os

from .algorithms import (
    hash_filename,
    hash_n64,
    hash_normalized_text,
    hash_whole_file,
    hash_with_header_skip,
)
from .archive import extract_to_temp_and_get_launch_file, is_archive_file
from .rahasher import RAHasher
from .results import ErrorKind, HashRequest, HashResult
from .rvz import convert_rvz_to_iso, is_rvz_file
from .systems import PlatformDefinition, PlatformRegistry, get_platform_registry

logger = logging.getLogger(__name__)

# Methods that never need an archive unpacked first. RAHasher reads
# containers itself, and arcade sets are identified by the archive name.
SKIP_EXTRACTION_METHODS = {"external_tool", "filename_only"}


class HashDispatcher:
    """Route hash requests to the right hashing method.

    Args:
        registry: Platform table (defaults to the shared registry)
        hasher: RAHasher adapter for disc-based platforms
        extractor: Coroutine ``(path, extensions) -> (inner_file, temp_dir)``
        converter: Coroutine ``(rvz_path) -> iso_path | None``
    """

    def __init__(
        self,
        registry: PlatformRegistry | None = None,
        hasher: RAHasher | None = None,
        extractor=None,
        converter=None,
    ):
        self.registry = registry or get_platform_registry()
        self.hasher = hasher or RAHasher()
        self.extractor = extractor or extract_to_temp_and_get_launch_file
        self.converter = converter or convert_rvz_to_iso
        self._methods = {
            "whole_file": self._hash_whole_file,
            "header_skip": self._hash_header_skip,
            "byte_swap": self._hash_byte_swapped,
            "filename_only": self._hash_filename,
            "line_ending_normalized": self._hash_normalized_text,
            "external_tool": self._hash_with_rahasher,
            "gamecube_disc": self._hash_gamecube_disc,
        }

    async def compute(self, request: HashRequest) -> HashResult:
        """Hash one file.

        Returns:
            HashResult with either the hash or the failure, plus any temp
            directory the caller has to remove
        """
        file_path = request.file_path
        if not file_path or not os.path.isfile(file_path):
            return HashResult.failure(
                ErrorKind.FILE_NOT_FOUND, f"File not found: {file_path}"
            )

        if not request.platform_name or not request.platform_name.strip():
            return HashResult.failure(
                ErrorKind.MISSING_PLATFORM, "Platform name is required."
            )

        match = self.registry.best_match(request.platform_name)
        if match is None:
            logger.warning(
                "No platform match for '%s'. Consider adding it as an alias.",
                request.platform_name,
            )
            return HashResult.failure(
                ErrorKind.UNSUPPORTED_PLATFORM,
                f"Unknown platform '{request.platform_name}'.",
            )

        platform = match.platform
        if not platform.is_supported:
            return HashResult.failure(
                ErrorKind.UNSUPPORTED_PLATFORM,
                f"Hashing is not supported for platform '{platform.key}'.",
            )

        method = platform.hash_method
        logger.debug(
            "Hashing %s as '%s' (%s match) using %s",
            file_path,
            platform.key,
            match.phase,
            method,
        )

        temp_dir = None
        try:
            effective_path = file_path
            if is_archive_file(file_path) and method not in SKIP_EXTRACTION_METHODS:
                inner_file, temp_dir = await self.extractor(
                    file_path, request.launch_extensions
                )
                if not inner_file:
                    return HashResult.failure(
                        ErrorKind.EXTRACTION_FAILURE,
                        f"Could not extract a usable file from {file_path}.",
                        temp_dir,
                    )
                effective_path = inner_file

            result = await self._methods[method](platform, effective_path)
            if result.success:
                logger.debug("Hash for %s: %s", file_path, result.hash)
            return result.with_temp_directory(temp_dir)
        except Exception as e:
            logger.exception(
                "Error hashing %s for platform '%s' using %s",
                file_path,
                platform.key,
                method,
            )
            return HashResult.failure(ErrorKind.UNEXPECTED_EXCEPTION, str(e), temp_dir)

    async def _hash_whole_file(self, platform: PlatformDefinition, path: str) -> HashResult:
        return HashResult.ok(await asyncio.to_thread(hash_whole_file, path))

    async def _hash_header_skip(self, platform: PlatformDefinition, path: str) -> HashResult:
        return HashResult.ok(
            await asyncio.to_thread(hash_with_header_skip, path, platform.header)
        )

    async def _hash_byte_swapped(self, platform: PlatformDefinition, path: str) -> HashResult:
        return HashResult.ok(await asyncio.to_thread(hash_n64, path))

    async def _hash_filename(self, platform: PlatformDefinition, path: str) -> HashResult:
        return HashResult.ok(hash_filename(path))

    async def _hash_normalized_text(
        self, platform: PlatformDefinition, path: str
    ) -> HashResult:
        return HashResult.ok(await asyncio.to_thread(hash_normalized_text, path))

    async def _hash_with_rahasher(
        self, platform: PlatformDefinition, path: str
    ) -> HashResult:
        if platform.catalog_id <= 0:
            return HashResult.failure(
                ErrorKind.UNSUPPORTED_PLATFORM,
                f"No RetroAchievements console ID for platform '{platform.key}'.",
            )
        return await self.hasher.invoke(platform.catalog_id, path)

    async def _hash_gamecube_disc(
        self, platform: PlatformDefinition, path: str
    ) -> HashResult:
        if not is_rvz_file(path):
            return await self._hash_with_rahasher(platform, path)

        iso_path = await self.converter(path)
        if not iso_path:
            return HashResult.failure(
                ErrorKind.CONVERSION_FAILURE,
                f"Could not convert {os.path.basename(path)} to ISO.",
            )

        try:
            return await self._hash_with_rahasher(platform, iso_path)
        finally:
            try:
                os.remove(iso_path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("Could not delete temporary ISO %s: %s", iso_path, e)


async def compute_hash(
    file_path: str, platform_name: str, launch_extensions=()
) -> HashResult:
    """Hash a file with a dispatcher configured from settings."""
    request = HashRequest(
        file_path=file_path,
        platform_name=platform_name,
        launch_extensions=tuple(launch_extensions or ()),
    )
    return await HashDispatcher().compute(request)
