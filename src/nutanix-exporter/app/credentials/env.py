"""Environment variable credential provider for development and testing.

Reads credentials from environment variables or a static mapping. Use for
local development, CI and tests; production deployments read from Vault.
"""

from __future__ import annotations

import os
import re

from shared.models import ClusterRole, Credentials

from .base import CredentialError

_ROLE_PREFIX = {
    ClusterRole.CENTRAL: "PC",
    ClusterRole.ELEMENT: "PE",
}


def _env_token(value: str) -> str:
    return re.sub(r"[^A-Z0-9]", "_", value.upper())


class EnvCredentialProvider:
    """Credential provider backed by environment variables or a static mapping.

    Lookup strategy:
    1. If a static mapping is provided, look up ``(cluster_name, role)``.
    2. Otherwise read ``{prefix}{CLUSTER}_{PC|PE}_USERNAME`` / ``_SECRET``.
    3. Fall back to the role-wide ``{prefix}{PC|PE}_USERNAME`` / ``_SECRET``.
    """

    def __init__(
        self,
        credentials: dict[tuple[str, ClusterRole], Credentials] | None = None,
        env_prefix: str = "NUTANIX_CRED_",
    ) -> None:
        self._credentials = credentials or {}
        self._env_prefix = env_prefix

    async def get_credentials(self, cluster_name: str, role: ClusterRole) -> Credentials:
        """Return credentials for a cluster."""
        if (cluster_name, role) in self._credentials:
            return self._credentials[(cluster_name, role)]

        role_token = _ROLE_PREFIX[role]
        candidates = [
            f"{self._env_prefix}{_env_token(cluster_name)}_{role_token}",
            f"{self._env_prefix}{role_token}",
        ]
        for base in candidates:
            username = os.environ.get(f"{base}_USERNAME")
            secret = os.environ.get(f"{base}_SECRET")
            if username and secret:
                return Credentials(username=username, secret=secret)

        raise CredentialError(
            f"No credentials configured for {cluster_name}. "
            f"Set {candidates[0]}_USERNAME and {candidates[0]}_SECRET "
            f"or {candidates[1]}_USERNAME and {candidates[1]}_SECRET."
        )

    async def close(self) -> None:
        return None
