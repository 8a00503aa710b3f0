"""Request and result types for hash computation."""

from dataclasses import dataclass, field, replace
from enum import Enum


class ErrorKind(str, Enum):
    """Why a hash could not be computed."""

    FILE_NOT_FOUND = "FileNotFound"
    MISSING_PLATFORM = "MissingPlatform"
    UNSUPPORTED_PLATFORM = "UnsupportedPlatform"
    EXTRACTION_FAILURE = "ExtractionFailure"
    CONVERSION_FAILURE = "ConversionFailure"
    EXTERNAL_TOOL_TIMEOUT = "ExternalToolTimeout"
    EXTERNAL_TOOL_FAILURE = "ExternalToolFailure"
    UNPARSEABLE_OUTPUT = "UnparseableOutput"
    UNEXPECTED_EXCEPTION = "UnexpectedException"


@dataclass(frozen=True)
class HashRequest:
    """A file to fingerprint and the (possibly non-canonical) platform it belongs to."""

    file_path: str
    platform_name: str
    # Only consulted when file_path is an archive that has to be unpacked
    launch_extensions: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class HashResult:
    """Outcome of a single hash request.

    Exactly one of ``hash`` and ``error_kind`` is set. ``temp_directory`` is
    owned by the caller and must be removed after use, whether the request
    succeeded or not.
    """

    hash: str | None = None
    error_kind: ErrorKind | None = None
    error_message: str | None = None
    temp_directory: str | None = None

    def __post_init__(self):
        if (self.hash is None) == (self.error_kind is None):
            raise ValueError("HashResult needs exactly one of hash or error_kind")

    @classmethod
    def ok(cls, hash_value: str, temp_directory: str | None = None) -> "HashResult":
        return cls(hash=hash_value.lower(), temp_directory=temp_directory)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        temp_directory: str | None = None,
    ) -> "HashResult":
        return cls(error_kind=kind, error_message=message, temp_directory=temp_directory)

    @property
    def success(self) -> bool:
        return self.hash is not None

    def with_temp_directory(self, temp_directory: str | None) -> "HashResult":
        """Return a copy that reports ``temp_directory`` for cleanup."""
        if temp_directory is None or temp_directory == self.temp_directory:
            return self
        return replace(self, temp_directory=temp_directory)

    def to_dict(self) -> dict:
        """Serialize to the shape exposed to launcher code."""
        return {
            "hash": self.hash,
            "tempDirectory": self.temp_directory,
            "success": self.success,
            "errorMessage": self.error_message,
        }
