"""Prism API clients."""

from .nutanix import (
    CentralClient,
    ElementClient,
    NutanixAPIError,
    NutanixAuthError,
    NutanixClient,
    NutanixConnectionError,
    NutanixError,
    StaleCredentialsError,
    create_client,
)

__all__ = [
    "CentralClient",
    "ElementClient",
    "NutanixAPIError",
    "NutanixAuthError",
    "NutanixClient",
    "NutanixConnectionError",
    "NutanixError",
    "StaleCredentialsError",
    "create_client",
]
