"""Exception hierarchy shared by the resolver, parsers and adapters."""

from __future__ import annotations

from typing import Optional


class LicenseGateError(Exception):
    """Base class for all errors raised by LicenseGate."""


class MalformedCoordinate(LicenseGateError, ValueError):
    """A single dependency coordinate could not be normalized."""

    def __init__(self, coordinate: str, reason: str = "unparseable coordinate"):
        super().__init__(f"{reason}: {coordinate!r}")
        self.coordinate = coordinate
        self.reason = reason


class InvalidArgument(LicenseGateError, TypeError):
    """A caller passed the wrong container type into a parser or classifier."""


class ResolutionFailed(LicenseGateError):
    """The license oracle produced no output for a chunk after all retries."""

    def __init__(
        self,
        chunk_index: int,
        total_chunks: int,
        attempts: int,
        failure_kind: Optional[str] = None,
    ):
        message = (
            f"Chunk {chunk_index} of {total_chunks} failed after {attempts} "
            f"attempt(s). Aborted processing."
        )
        if failure_kind:
            message = f"{message} Last failure: {failure_kind}."
        super().__init__(message)
        self.chunk_index = chunk_index
        self.total_chunks = total_chunks
        self.attempts = attempts
        self.failure_kind = failure_kind


class LedgerMissingOrEmpty(LicenseGateError):
    """The ledger file is absent or zero-length after resolution."""

    def __init__(self, path: str, missing: bool = True):
        state = "not found" if missing else "empty"
        super().__init__(
            f"{path} file is {state}. Check internet connection and try again."
        )
        self.path = path
        self.missing = missing


class ConfigError(LicenseGateError, ValueError):
    """Configuration file or values are invalid."""


class AdapterError(LicenseGateError):
    """A package-manager command or its expected output failed."""
