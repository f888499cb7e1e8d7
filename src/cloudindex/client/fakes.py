"""In-memory fake of the managed index service.

``FakePlatformClient`` implements ``PlatformClientProtocol`` and records every
call so that tests can assert on the exact sequence of remote operations
without mocking HTTP.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from cloudindex.client.models import (
    ManagedIngestionStatus,
    Pipeline,
    PipelineStatus,
    Project,
    RetrieveResponse,
    ScoredNode,
    TextNode,
)


@dataclass
class FakeCall:
    """A recorded remote call."""

    operation: str
    args: dict[str, Any] = field(default_factory=dict)


class FakePlatformClient:
    """Scriptable stand-in for ``PlatformClient``."""

    def __init__(
        self,
        *,
        project_id: str | None = "proj-1",
        pipeline_id: str | None = "pipe-1",
        statuses: Iterable[str | ManagedIngestionStatus] = (ManagedIngestionStatus.SUCCESS,),
        status_error: list[Any] | None = None,
        nodes: list[tuple[str, dict[str, Any], float]] | None = None,
        failures: dict[str, BaseException] | None = None,
    ) -> None:
        """Initialize the fake.

        Args:
            project_id: ID returned by ``upsert_project``, ``None`` to omit it
            pipeline_id: ID returned by ``upsert_pipeline``, ``None`` to omit it
            statuses: Status values returned by successive status polls; the
                last one repeats once the sequence is exhausted
            status_error: ``error`` details attached to every status response
            nodes: ``(text, metadata, score)`` triples returned by ``retrieve``
            failures: Exceptions to raise, keyed by operation name
        """
        self.project_id = project_id
        self.pipeline_id = pipeline_id
        self._statuses = deque(
            s.value if isinstance(s, ManagedIngestionStatus) else s for s in statuses
        )
        self.status_error = status_error
        self.nodes = nodes or []
        self.failures = failures or {}
        self.calls: list[FakeCall] = []
        self.documents: dict[str, dict[str, dict[str, Any]]] = {}
        self.closed = False

    def operations(self) -> list[str]:
        """Names of the recorded calls, in order."""
        return [call.operation for call in self.calls]

    def calls_to(self, operation: str) -> list[FakeCall]:
        return [call for call in self.calls if call.operation == operation]

    def _record(self, operation: str, **args: Any) -> None:
        self.calls.append(FakeCall(operation, args))
        if operation in self.failures:
            raise self.failures[operation]

    async def upsert_project(self, name: str) -> Project:
        self._record("upsert_project", name=name)
        return Project(id=self.project_id, name=name)

    async def upsert_pipeline(self, project_id: str, request: dict[str, Any]) -> Pipeline:
        self._record("upsert_pipeline", project_id=project_id, request=request)
        return Pipeline(
            id=self.pipeline_id,
            name=request.get("name"),
            project_id=project_id,
            pipeline_type=request.get("pipeline_type"),
        )

    async def upsert_documents(self, pipeline_id: str, documents: list[dict[str, Any]]) -> None:
        self._record("upsert_documents", pipeline_id=pipeline_id, documents=documents)
        stored = self.documents.setdefault(pipeline_id, {})
        for doc in documents:
            stored[doc["id"]] = doc

    async def create_documents(self, pipeline_id: str, documents: list[dict[str, Any]]) -> None:
        self._record("create_documents", pipeline_id=pipeline_id, documents=documents)
        stored = self.documents.setdefault(pipeline_id, {})
        for doc in documents:
            stored[doc["id"]] = doc

    async def delete_document(self, pipeline_id: str, document_id: str) -> None:
        self._record("delete_document", pipeline_id=pipeline_id, document_id=document_id)
        self.documents.get(pipeline_id, {}).pop(document_id, None)

    async def get_pipeline_status(self, pipeline_id: str) -> PipelineStatus:
        self._record("get_pipeline_status", pipeline_id=pipeline_id)
        status = self._statuses.popleft() if len(self._statuses) > 1 else self._statuses[0]
        return PipelineStatus(status=status, error=self.status_error)

    async def retrieve(self, pipeline_id: str, request: dict[str, Any]) -> RetrieveResponse:
        self._record("retrieve", pipeline_id=pipeline_id, request=request)
        top_k = request.get("dense_similarity_top_k", len(self.nodes))
        return RetrieveResponse(
            retrieval_nodes=[
                ScoredNode(node=TextNode(id_=f"node-{i}", text=text, metadata=metadata), score=score)
                for i, (text, metadata, score) in enumerate(self.nodes[:top_k])
            ]
        )

    async def aclose(self) -> None:
        self.closed = True
