"""Configuration package for the managed index client.

This package provides the connection configuration, runtime options and the
component-specific configuration classes.
"""

from .components import (
    CloudIndexParams,
    PollingConfig,
    RetrieveParams,
    SynthesizerConfig,
)

# Import after components to avoid circular import
from .main import DEFAULT_BASE_URL, CloudConfig, RuntimeOptions, app_url_from_base

__all__ = [
    "DEFAULT_BASE_URL",
    "CloudConfig",
    "CloudIndexParams",
    "PollingConfig",
    "RetrieveParams",
    "RuntimeOptions",
    "SynthesizerConfig",
    "app_url_from_base",
]
