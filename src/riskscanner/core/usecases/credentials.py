from __future__ import annotations

from datetime import datetime, timezone

from ..domain.exceptions import AIError, AIErrorKind, CredentialMissingError
from ..domain.models import ConnectionTestResult, CredentialStatus, ProviderCredential
from ..ports import AdvisorFactoryPort, CredentialStorePort, LoggerPort, SecretVaultPort
from ..services import CredentialResolver


class SaveCredentialUseCase:
    """Replace the single stored provider credential.

    The key is encrypted when the vault has a secret, stored in the clear otherwise.
    """

    def __init__(
        self,
        *,
        store: CredentialStorePort,
        vault: SecretVaultPort,
        advisor_factory: AdvisorFactoryPort,
        logger: LoggerPort,
    ) -> None:
        self._store = store
        self._vault = vault
        self._advisor_factory = advisor_factory
        self._logger = logger

    def execute(self, *, provider: str, model: str, secret: str) -> CredentialStatus:
        """Raises UnsupportedProviderError for unknown provider tags, CryptoError on encryption failure."""
        provider = self._advisor_factory.validate(provider)

        encrypted = self._vault.is_configured()
        value = self._vault.encrypt(secret) if encrypted and secret else secret

        self._store.save(
            ProviderCredential(
                provider=provider,
                model=model,
                value=value,
                encrypted=encrypted and bool(secret),
                updated_at=datetime.now(timezone.utc),
            )
        )
        self._logger.info(
            "credential_saved",
            type="credential_saved",
            provider=provider,
            model=model,
            encrypted=encrypted,
        )
        if not encrypted:
            self._logger.warning("credential_plaintext", type="credential_plaintext", provider=provider)

        return CredentialStatus(
            provider=provider,
            model=model,
            has_key=bool(secret),
            encrypted=encrypted and bool(secret),
            vault_configured=encrypted,
        )


class TestCredentialUseCase:
    """Validate a credential with a minimal round-trip; mutates nothing."""

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        *,
        credentials: CredentialResolver,
        advisor_factory: AdvisorFactoryPort,
        logger: LoggerPort,
    ) -> None:
        self._credentials = credentials
        self._advisor_factory = advisor_factory
        self._logger = logger

    def execute(self, *, provider: str | None = None, model: str | None = None) -> ConnectionTestResult:
        """Raises:
            AIError: If the provider rejects or cannot serve the request
            CredentialMissingError: If no key is available for a provider that needs one
            CryptoError: If the stored key cannot be decrypted
        """
        stored = self._credentials.stored()
        if provider is None:
            if stored is None:
                raise CredentialMissingError("<none>")
            provider = stored.provider
        provider = self._advisor_factory.validate(provider)
        if model is None:
            model = stored.model if stored is not None and stored.provider == provider else ""

        api_key = self._credentials.api_key(provider)
        if not api_key and self._advisor_factory.requires_api_key(provider):
            raise CredentialMissingError(provider)

        advisor = self._advisor_factory.create(provider=provider, model=model, api_key=api_key)
        result = advisor.test_connection()
        self._logger.info(
            "credential_tested",
            type="credential_tested",
            provider=result.provider,
            model=result.model,
            success=result.success,
            error_kind=result.error_kind,
        )
        if not result.success:
            kind = AIErrorKind(result.error_kind) if result.error_kind else AIErrorKind.UNREACHABLE
            raise AIError(kind, result.reason or "Connection test failed", provider=provider)
        return result


class CredentialStatusUseCase:
    def __init__(self, *, credentials: CredentialResolver) -> None:
        self._credentials = credentials

    def execute(self) -> CredentialStatus:
        return self._credentials.status()
