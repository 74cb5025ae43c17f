from __future__ import annotations

from ..domain.models import CredentialStatus, ProviderCredential
from ..ports import CredentialStorePort, SecretVaultPort


class CredentialResolver:
    """Resolves the API key for a provider.

    An explicitly configured key (environment/config) wins over the stored credential.
    The stored credential is only used when it was saved for the same provider.
    """

    def __init__(
        self,
        *,
        store: CredentialStorePort,
        vault: SecretVaultPort,
        override_api_key: str | None = None,
    ) -> None:
        self._store = store
        self._vault = vault
        self._override_api_key = override_api_key

    def stored(self) -> ProviderCredential | None:
        return self._store.load()

    def api_key(self, provider: str) -> str | None:
        """Raises CryptoError if the stored key cannot be decrypted."""
        if self._override_api_key:
            return self._override_api_key

        credential = self._store.load()
        if credential is None or credential.provider != provider:
            return None
        if credential.encrypted:
            return self._vault.decrypt(credential.value)
        return credential.value

    def status(self) -> CredentialStatus:
        credential = self._store.load()
        return CredentialStatus(
            provider=credential.provider if credential else None,
            model=credential.model if credential else None,
            has_key=bool(credential and credential.value) or bool(self._override_api_key),
            encrypted=bool(credential and credential.encrypted),
            vault_configured=self._vault.is_configured(),
        )
