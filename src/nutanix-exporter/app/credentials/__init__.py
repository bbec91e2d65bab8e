"""Credential providers for Prism Central and Prism Element task accounts."""

from .base import CredentialError, CredentialProvider, build_provider
from .env import EnvCredentialProvider
from .vault import VaultCredentialProvider

__all__ = [
    "CredentialError",
    "CredentialProvider",
    "EnvCredentialProvider",
    "VaultCredentialProvider",
    "build_provider",
]
