"""Main configuration classes for the managed index client.

``CloudConfig`` holds the static connection settings and ``RuntimeOptions``
the mutable flags and callbacks. Environment variables are only read by
``CloudConfig.from_env`` so that library code never depends on process state.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

DEFAULT_BASE_URL = "https://api.cloud.llamaindex.ai"

API_KEY_ENV = "LLAMA_CLOUD_API_KEY"
BASE_URL_ENV = "LLAMA_CLOUD_BASE_URL"
OPENAI_API_KEY_ENV = "OPENAI_API_KEY"


def app_url_from_base(base_url: str) -> str:
    """Return the web application URL for an API base URL.

    The dashboard lives on the same host without the ``api.`` prefix, e.g.
    ``https://api.cloud.llamaindex.ai`` -> ``https://cloud.llamaindex.ai``.
    """
    return base_url.rstrip("/").replace("://api.", "://", 1)


@dataclass(frozen=True)
class CloudConfig:
    """Connection configuration for the managed index service.

    Attributes:
        api_key: Bearer token for the service
        base_url: Base URL of the REST API
        openai_api_key: Key handed to the default embedding transformation
        project_name: Project used when none is given per call
        timeout_seconds: HTTP timeout for a single request
    """

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    openai_api_key: str = ""
    project_name: str = "default"
    timeout_seconds: float = 60.0

    @property
    def app_url(self) -> str:
        """Web application URL matching ``base_url``."""
        return app_url_from_base(self.base_url)

    @classmethod
    def from_env(cls, **overrides: Any) -> "CloudConfig":
        """Build a configuration from environment variables.

        Explicit keyword arguments win over the environment; ``None`` values
        are ignored so CLI options can be passed straight through.
        """
        values: dict[str, Any] = {
            "api_key": os.getenv(API_KEY_ENV, ""),
            "base_url": os.getenv(BASE_URL_ENV) or DEFAULT_BASE_URL,
            "openai_api_key": os.getenv(OPENAI_API_KEY_ENV, ""),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class RuntimeOptions:
    """Runtime options for ingestion and querying.

    Attributes:
        verbose: Emit progress markers and the final location hint
        progress_callback: Optional callback receiving progress dictionaries
            with ``stage``, ``current``, ``total`` and ``message`` keys
        log_callback: Optional callback receiving ``(level, message, subsystem)``
    """

    verbose: bool = False
    progress_callback: Callable[[dict[str, Any]], None] | None = None
    log_callback: Callable[[str, str, str], None] | None = None
