"""Base types for pipeline transformation steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TransformationStep(Protocol):
    """A processing step the service runs on ingested documents.

    Steps are opaque to this client: it only needs the service's type tag and
    the component configuration to send along with the pipeline definition.
    """

    @property
    def transformation_type(self) -> str:
        """Service identifier of the step, e.g. ``OPENAI_EMBEDDING``."""
        ...

    def component(self) -> dict[str, Any]:
        """Configuration of the step as sent to the service."""
        ...


@dataclass(frozen=True)
class ConfiguredTransformation:
    """A transformation step built directly from its wire representation."""

    transformation_type: str
    config: dict[str, Any] = field(default_factory=dict)

    def component(self) -> dict[str, Any]:
        return dict(self.config)
