"""Response models for the managed index REST API."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ManagedIngestionStatus(str, Enum):
    """Ingestion statuses reported by the service."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"


TERMINAL_STATUSES = frozenset(
    {
        ManagedIngestionStatus.SUCCESS.value,
        ManagedIngestionStatus.ERROR.value,
        ManagedIngestionStatus.PARTIAL_SUCCESS.value,
    }
)


class _ServiceModel(BaseModel):
    # The service adds fields over time; keep whatever it sends
    model_config = ConfigDict(extra="allow")


class Project(_ServiceModel):
    id: str | None = None
    name: str | None = None


class Pipeline(_ServiceModel):
    id: str | None = None
    name: str | None = None
    project_id: str | None = None
    pipeline_type: str | None = None


class PipelineStatus(_ServiceModel):
    """Ingestion status of a pipeline.

    ``status`` is kept as the raw string so that values this client does not
    know about are still reported; they count as in progress.
    """

    status: str
    error: list[Any] | None = None
    job_id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class TextNode(_ServiceModel):
    id_: str | None = None
    text: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class ScoredNode(_ServiceModel):
    node: TextNode
    score: float | None = None


class RetrieveResponse(_ServiceModel):
    retrieval_nodes: list[ScoredNode] = Field(default_factory=list)
