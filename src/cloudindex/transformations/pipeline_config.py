"""Pipeline definition builder.

Turns an ordered list of transformation steps into the configured
transformations payload of a pipeline upsert. This is a pure mapping: steps
are neither reordered, deduplicated nor validated; the service rejects
malformed steps.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from cloudindex.documents import Document
from cloudindex.transformations.base import TransformationStep

MANAGED_PIPELINE_TYPE = "MANAGED"


@dataclass(frozen=True)
class PipelineCreate:
    """Pipeline definition ready to be upserted."""

    name: str
    pipeline_type: str
    configured_transformations: list[dict[str, Any]] = field(default_factory=list)
    document_count: int = 0

    def to_request(self) -> dict[str, Any]:
        """Body of the pipeline upsert request."""
        return {
            "name": self.name,
            "configured_transformations": [
                dict(item) for item in self.configured_transformations
            ],
            "pipeline_type": self.pipeline_type,
        }


def configure_transformation(step: TransformationStep) -> dict[str, Any]:
    """Return the configured-transformation entry for *step*."""
    return {
        "configurable_transformation_type": step.transformation_type,
        "component": step.component(),
    }


def build_pipeline_create(
    pipeline_name: str,
    pipeline_type: str,
    documents: Sequence[Document],
    transformations: Sequence[TransformationStep],
) -> PipelineCreate:
    """Build the pipeline definition for *documents*.

    Args:
        pipeline_name: Name of the pipeline
        pipeline_type: Pipeline type tag, ``MANAGED`` for this client
        documents: Documents that will be submitted to the pipeline
        transformations: Steps in execution order

    Returns:
        The pipeline definition
    """
    return PipelineCreate(
        name=pipeline_name,
        pipeline_type=pipeline_type,
        configured_transformations=[
            configure_transformation(step) for step in transformations
        ],
        document_count=len(documents),
    )
