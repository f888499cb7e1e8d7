"""HTTP gateway to the managed index service.

``PlatformClient`` is a thin asynchronous wrapper around the service's REST
API. It performs exactly one HTTP request per call: error responses become
``APIError`` and transport failures propagate unchanged. Nothing is retried
here.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote

import httpx

from cloudindex.client.models import (
    Pipeline,
    PipelineStatus,
    Project,
    RetrieveResponse,
)
from cloudindex.config.main import DEFAULT_BASE_URL
from cloudindex.utils.exceptions import APIError
from cloudindex.utils.logging_utils import get_logger

logger = get_logger()

SERVICE_NAME = "LlamaCloud"
API_PREFIX = "/api/v1"
MAX_ERROR_BODY = 500


@runtime_checkable
class PlatformClientProtocol(Protocol):
    """Operations the orchestrator, index and adapters need from the service."""

    async def upsert_project(self, name: str) -> Project:
        """Create the project or return the existing one with that name."""
        ...

    async def upsert_pipeline(self, project_id: str, request: dict[str, Any]) -> Pipeline:
        """Create or update a pipeline inside a project."""
        ...

    async def upsert_documents(self, pipeline_id: str, documents: list[dict[str, Any]]) -> None:
        """Submit a batch of documents, replacing existing ones with the same ID."""
        ...

    async def create_documents(self, pipeline_id: str, documents: list[dict[str, Any]]) -> None:
        """Append a batch of documents to a pipeline."""
        ...

    async def delete_document(self, pipeline_id: str, document_id: str) -> None:
        """Remove a document from a pipeline."""
        ...

    async def get_pipeline_status(self, pipeline_id: str) -> PipelineStatus:
        """Read the current ingestion status of a pipeline."""
        ...

    async def retrieve(self, pipeline_id: str, request: dict[str, Any]) -> RetrieveResponse:
        """Run a similarity search against a pipeline."""
        ...


class PlatformClient:
    """REST client for the managed index service."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str | None = None,
        *,
        timeout_seconds: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL of the REST API
            api_key: Bearer token sent with every request
            timeout_seconds: Timeout for a single request
            http_client: Optional preconfigured ``httpx.AsyncClient``; the
                caller keeps ownership of it
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._http = http_client
        self._owns_http = http_client is None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            headers = {"Accept": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        return self._http

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this object created it."""
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> PlatformClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        logger.debug(f"{method} {path} ({operation})", subsystem="Gateway")
        response = await self.http.request(method, f"{API_PREFIX}{path}", **kwargs)
        if response.is_error:
            raise APIError(
                SERVICE_NAME,
                operation,
                response.text[:MAX_ERROR_BODY],
                status_code=response.status_code,
            )
        return response

    async def upsert_project(self, name: str) -> Project:
        response = await self._request(
            "upsert_project", "PUT", "/projects", json={"name": name}
        )
        return Project.model_validate(response.json())

    async def upsert_pipeline(self, project_id: str, request: dict[str, Any]) -> Pipeline:
        response = await self._request(
            "upsert_pipeline",
            "PUT",
            "/pipelines",
            params={"project_id": project_id},
            json=request,
        )
        return Pipeline.model_validate(response.json())

    async def upsert_documents(self, pipeline_id: str, documents: list[dict[str, Any]]) -> None:
        await self._request(
            "upsert_documents",
            "PUT",
            f"/pipelines/{pipeline_id}/documents",
            json=documents,
        )

    async def create_documents(self, pipeline_id: str, documents: list[dict[str, Any]]) -> None:
        await self._request(
            "create_documents",
            "POST",
            f"/pipelines/{pipeline_id}/documents",
            json=documents,
        )

    async def delete_document(self, pipeline_id: str, document_id: str) -> None:
        await self._request(
            "delete_document",
            "DELETE",
            f"/pipelines/{pipeline_id}/documents/{quote(document_id, safe='')}",
        )

    async def get_pipeline_status(self, pipeline_id: str) -> PipelineStatus:
        response = await self._request(
            "get_pipeline_status", "GET", f"/pipelines/{pipeline_id}/status"
        )
        return PipelineStatus.model_validate(response.json())

    async def retrieve(self, pipeline_id: str, request: dict[str, Any]) -> RetrieveResponse:
        response = await self._request(
            "retrieve", "POST", f"/pipelines/{pipeline_id}/retrieve", json=request
        )
        return RetrieveResponse.model_validate(response.json())
