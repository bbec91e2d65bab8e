"""Credential provider protocol and error types.

Defines the interface every credential backend satisfies.
Built-in backends: VaultCredentialProvider (production) and
EnvCredentialProvider (development/testing).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from shared.models import ClusterRole, Credentials

if TYPE_CHECKING:
    from shared.config import Settings


class CredentialError(Exception):
    """Raised when a provider cannot return credentials for a cluster."""

    pass


@runtime_checkable
class CredentialProvider(Protocol):
    """Protocol for credential backends.

    Any object with async ``get_credentials()`` and ``close()`` methods
    satisfies this protocol.
    """

    async def get_credentials(self, cluster_name: str, role: ClusterRole) -> Credentials:
        """Return the username/secret pair for a cluster.

        Args:
            cluster_name: Prism Central or Prism Element cluster name.
            role: Which task account to read (central or element).

        Raises:
            CredentialError: If the backend has no usable credentials.
        """
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...


def build_provider(settings: Settings) -> CredentialProvider:
    """Build the credential provider selected by ``CREDENTIAL_BACKEND``."""
    from shared.config import CredentialBackend

    from .env import EnvCredentialProvider
    from .vault import VaultCredentialProvider

    if settings.credential_backend == CredentialBackend.ENV:
        return EnvCredentialProvider()

    return VaultCredentialProvider(settings.vault)
