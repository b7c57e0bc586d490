"""Credential storage and lookup for the Google Cloud TTS API key.

Responsibilities:
- Persist the API key in an OS-backed secure credential store.
- Expose the single connected credential consumed by the provider client.
- Avoid logging or exposing secret values in diagnostics.

Key types:
- `CredentialStore`: interface for provider credential persistence.
- `KeyringCredentialStore`: keyring-backed secure credential storage.
- `KeyringCredentialProvider`: connected-credential lookup (explicit key, then keyring).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from .parsing import normalize_optional_string


_DEFAULT_SERVICE_NAME = "gcptts"
_DEFAULT_ACCOUNT_NAME = "google_tts_api_key"


class CredentialStore:
    """Interface for secure provider credential operations."""

    def is_available(self) -> bool:
        """Return whether secure credential operations are available."""

        raise NotImplementedError

    def get_api_key(self) -> str | None:
        """Load the stored API key from secure storage, when available."""

        raise NotImplementedError

    def set_api_key(self, api_key: str) -> None:
        """Persist an API key in secure storage."""

        raise NotImplementedError

    def clear_api_key(self) -> bool:
        """Delete a stored API key and return whether one existed."""

        raise NotImplementedError


@dataclass(slots=True)
class KeyringCredentialStore(CredentialStore):
    """Secure credential store backed by the `keyring` package."""

    service_name: str = _DEFAULT_SERVICE_NAME
    account_name: str = _DEFAULT_ACCOUNT_NAME

    def _load_keyring_module(self):
        """Import and return the `keyring` module, or `None` when it cannot be imported."""

        try:
            import keyring  # type: ignore
        except ImportError:
            return None
        return keyring

    def is_available(self) -> bool:
        """Return `True` when `keyring` can be imported in this environment."""

        return self._load_keyring_module() is not None

    def get_api_key(self) -> str | None:
        """Get a normalized API key from keyring, returning `None` when missing."""

        keyring_module = self._load_keyring_module()
        if keyring_module is None:
            return None
        value = keyring_module.get_password(self.service_name, self.account_name)
        return normalize_optional_string(value)

    def set_api_key(self, api_key: str) -> None:
        """Persist a normalized API key in keyring or raise when unavailable."""

        keyring_module = self._load_keyring_module()
        if keyring_module is None:
            raise RuntimeError(
                "Secure credential storage is unavailable because `keyring` cannot be "
                "imported. Install a keyring backend to persist API keys securely."
            )

        normalized = normalize_optional_string(api_key)
        if normalized is None:
            raise ValueError("API key must be a non-empty string.")
        keyring_module.set_password(self.service_name, self.account_name, normalized)

    def clear_api_key(self) -> bool:
        """Remove the stored API key from keyring and report if one was present."""

        keyring_module = self._load_keyring_module()
        if keyring_module is None:
            return False

        existing = self.get_api_key()
        if existing is None:
            return False

        keyring_module.delete_password(self.service_name, self.account_name)
        return True


@dataclass(slots=True)
class KeyringCredentialProvider:
    """Resolve the connected API key: explicit value first, then secure storage."""

    api_key: str | None = None
    store: CredentialStore = field(default_factory=KeyringCredentialStore)

    def connected_credential(self) -> str | None:
        """Return the API key to use for provider requests, or `None` when disconnected."""

        explicit = normalize_optional_string(self.api_key)
        if explicit is not None:
            return explicit
        try:
            return self.store.get_api_key()
        except Exception as exc:
            # keyring backends raise their own error types when the OS vault is locked.
            logger.bind(component="credentials").warning(
                "Secure credential storage could not be read: {}", type(exc).__name__
            )
            return None


def create_credential_store() -> CredentialStore:
    """Create the default secure credential store implementation."""

    return KeyringCredentialStore()
