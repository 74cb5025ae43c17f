"""Domain exceptions for riskscanner.

Each error family carries a `kind` so callers can branch on the failure class without
parsing messages.
"""

from __future__ import annotations

from enum import Enum


class ScanErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    PARSE_FAILURE = "parse_failure"
    UNRESOLVABLE = "unresolvable"


class ScanError(Exception):
    """Raised when a build descriptor cannot be turned into a coordinate list.

    Fatal to the scan: no partial coordinate set is ever returned alongside it.
    """

    def __init__(self, kind: ScanErrorKind, path: str, message: str | None = None) -> None:
        self.kind = kind
        self.path = path
        if message is None:
            message = f"{kind.value}: {path}"
        super().__init__(message)


class AIErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    UNREACHABLE = "unreachable"
    MALFORMED_RESPONSE = "malformed_response"


class AIError(Exception):
    """Raised by AI providers and response parsing.

    Recoverable: the orchestrator falls back to deterministic scoring.
    """

    def __init__(self, kind: AIErrorKind, message: str, *, provider: str | None = None) -> None:
        self.kind = kind
        self.provider = provider
        super().__init__(message)


class CryptoErrorKind(str, Enum):
    SECRET_MISMATCH_OR_MISSING = "secret_mismatch_or_missing"


class CryptoError(Exception):
    """Raised when a stored credential cannot be opened with the configured secret."""

    def __init__(
        self,
        message: str = "Encryption secret is missing or does not match the stored credential",
        kind: CryptoErrorKind = CryptoErrorKind.SECRET_MISMATCH_OR_MISSING,
    ) -> None:
        self.kind = kind
        super().__init__(message)


class CacheError(Exception):
    """Raised by the analysis cache on storage failures; callers treat it as a miss."""


class UnsupportedProviderError(ValueError):
    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"Unsupported AI provider: {provider}")


class CredentialMissingError(Exception):
    """Raised when no API key is available for a provider that requires one."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"No API key configured for provider: {provider}")
