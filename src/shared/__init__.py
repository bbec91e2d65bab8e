"""Nutanix Exporter Shared Package.

This package contains components shared by the exporter service:
- models: Pydantic data models
- config: Configuration management
- observability: Structured logging
"""

__version__ = "0.1.0"
