"""Error taxonomy for android_kernelgen.

Every pipeline failure is one of four kinds:
- acquisition: toolchain/source/template fetch (network, git, extraction)
- build: external make/mkdtimg exits non-zero or cannot be started
- missing artifact: an expected build output is absent
- packaging: the flashable zip cannot be written or moved

Each error carries a stable ``code`` for structured reporting. All kinds
abort the pipeline the same way.
"""

from __future__ import annotations

from pathlib import Path

# Error code constants
ACQUISITION_ERROR = "acquisition_error"
HTTP_ERROR = "http_error"
TIMEOUT_ERROR = "timeout"
NETWORK_ERROR = "network_error"
GIT_ERROR = "git_error"
EXTRACTION_ERROR = "extraction_error"
BUILD_ERROR = "build_failed"
BUILD_TIMEOUT = "build_timeout"
EXECUTION_ERROR = "execution_error"
CONFIG_ERROR = "config_error"
MISSING_ARTIFACT = "missing_artifact"
PACKAGING_ERROR = "packaging_error"


class KernelGenError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, message: str, code: str = "kernelgen_error") -> None:
        """Initialize KernelGenError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


class AcquisitionError(KernelGenError):
    """Raised when a toolchain, source tree or template cannot be fetched."""

    def __init__(self, message: str, code: str = ACQUISITION_ERROR) -> None:
        super().__init__(message, code=code)


class BuildError(KernelGenError):
    """Raised when an external build command fails."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        log_path: Path | None = None,
        code: str = BUILD_ERROR,
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code
        self.log_path = log_path


class MissingArtifactError(KernelGenError):
    """Raised when an expected build output does not exist."""

    def __init__(self, message: str, code: str = MISSING_ARTIFACT) -> None:
        super().__init__(message, code=code)


class PackagingError(KernelGenError):
    """Raised when the flashable zip cannot be produced."""

    def __init__(self, message: str, code: str = PACKAGING_ERROR) -> None:
        super().__init__(message, code=code)


__all__ = [
    "ACQUISITION_ERROR",
    "BUILD_ERROR",
    "BUILD_TIMEOUT",
    "CONFIG_ERROR",
    "EXECUTION_ERROR",
    "EXTRACTION_ERROR",
    "GIT_ERROR",
    "HTTP_ERROR",
    "MISSING_ARTIFACT",
    "NETWORK_ERROR",
    "PACKAGING_ERROR",
    "TIMEOUT_ERROR",
    "AcquisitionError",
    "BuildError",
    "KernelGenError",
    "MissingArtifactError",
    "PackagingError",
]
