"""Handle on a managed index.

A ``CloudIndex`` holds the identity of a remote pipeline and the shared
gateway client. It creates retrievers and query engines bound to the pipeline
and applies single-document mutations. Its parameters are frozen; adapters
receive copies with per-call overrides applied.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from cloudindex.client.gateway import PlatformClient, PlatformClientProtocol
from cloudindex.client.models import PipelineStatus
from cloudindex.config import (
    CloudConfig,
    CloudIndexParams,
    PollingConfig,
    RetrieveParams,
    RuntimeOptions,
    SynthesizerConfig,
)
from cloudindex.config.components import field_names
from cloudindex.documents import Document
from cloudindex.retrieval.query_engine import CloudQueryEngine, NodePostprocessor
from cloudindex.retrieval.retriever import CloudRetriever
from cloudindex.retrieval.synthesizers import ChatResponseSynthesizer, ResponseSynthesizer
from cloudindex.utils.async_utils import SleepFunc, run_coro_sync
from cloudindex.utils.exceptions import InvalidConfigurationError, PipelineNotInitializedError
from cloudindex.utils.logging_utils import get_logger

if TYPE_CHECKING:
    from cloudindex.ingestion.orchestrator import IngestionOutcome
    from cloudindex.transformations import TransformationStep

logger = get_logger()

# Overrides that change which service the adapter talks to
_CONNECTION_KEYS = frozenset({"base_url", "api_key"})


class CloudIndex:
    """A managed index living on the remote service."""

    def __init__(
        self,
        params: CloudIndexParams,
        client: PlatformClientProtocol,
        *,
        retrieve_params: RetrieveParams | None = None,
        synthesizer_config: SynthesizerConfig | None = None,
        response_synthesizer: ResponseSynthesizer | None = None,
        outcome: IngestionOutcome | None = None,
        runtime: RuntimeOptions | None = None,
        derived_clients: list[Any] | None = None,
    ) -> None:
        """Initialize the handle.

        Args:
            params: Pipeline identity and connection parameters
            client: Shared gateway client
            retrieve_params: Default retrieval parameters for adapters
            synthesizer_config: Configuration of the default answer synthesizer
            response_synthesizer: Synthesizer used by query engines unless one
                is passed to :meth:`as_query_engine`
            outcome: Terminal outcome of the ingestion that created the index
            runtime: Runtime options
            derived_clients: Registry of clients built for connection
                overrides; whoever owns the shared client closes these too
        """
        self._params = params
        self._retrieve_params = retrieve_params or RetrieveParams()
        self.client = client
        self.synthesizer_config = synthesizer_config or SynthesizerConfig()
        self.response_synthesizer = response_synthesizer
        self.outcome = outcome
        self.runtime = runtime or RuntimeOptions()
        self.derived_clients = derived_clients if derived_clients is not None else []

    def __repr__(self) -> str:
        return (
            f"CloudIndex(name={self._params.name!r}, "
            f"pipeline_id={self._params.pipeline_id!r})"
        )

    @property
    def params(self) -> CloudIndexParams:
        return self._params

    @property
    def retrieve_params(self) -> RetrieveParams:
        return self._retrieve_params

    @property
    def pipeline_id(self) -> str | None:
        return self._params.pipeline_id

    @property
    def project_id(self) -> str | None:
        return self._params.project_id

    @property
    def deep_link(self) -> str | None:
        return self._params.deep_link

    @classmethod
    async def from_documents(
        cls,
        documents: Sequence[Document],
        client: PlatformClientProtocol,
        *,
        name: str,
        project_name: str | None = None,
        transformations: Sequence[TransformationStep] | None = None,
        config: CloudConfig | None = None,
        polling: PollingConfig | None = None,
        runtime: RuntimeOptions | None = None,
        verbose: bool | None = None,
        sleep: SleepFunc = asyncio.sleep,
        **params: Any,
    ) -> CloudIndex:
        """Create an index by ingesting *documents* into a new or existing pipeline.

        The project defaults to ``config.project_name``. Extra keyword
        arguments (``base_url``, ``api_key``) are stored in the handle's
        ``CloudIndexParams``.
        """
        from cloudindex.ingestion.orchestrator import IngestionOrchestrator

        orchestrator = IngestionOrchestrator(
            client, config, polling, runtime, sleep=sleep
        )
        project_name = project_name or orchestrator.config.project_name
        return await orchestrator.create_from_documents(
            documents,
            transformations,
            CloudIndexParams(name=name, project_name=project_name, **params),
            verbose=verbose,
        )

    @classmethod
    def from_documents_sync(
        cls,
        documents: Sequence[Document],
        client: PlatformClientProtocol,
        **kwargs: Any,
    ) -> CloudIndex:
        """Synchronous wrapper for :meth:`from_documents`."""
        return run_coro_sync(cls.from_documents(documents, client, **kwargs))

    def _require_pipeline_id(self, operation: str) -> str:
        if not self._params.pipeline_id:
            raise PipelineNotInitializedError(operation)
        return self._params.pipeline_id

    def _split_overrides(
        self, overrides: dict[str, Any]
    ) -> tuple[CloudIndexParams, RetrieveParams]:
        index_keys = field_names(CloudIndexParams)
        retrieve_keys = field_names(RetrieveParams)
        unknown = set(overrides) - index_keys - retrieve_keys
        if unknown:
            raise InvalidConfigurationError(
                ", ".join(sorted(unknown)),
                overrides,
                "CloudIndexParams or RetrieveParams fields",
            )
        params = replace(
            self._params, **{k: v for k, v in overrides.items() if k in index_keys}
        )
        retrieve_params = replace(
            self._retrieve_params,
            **{k: v for k, v in overrides.items() if k in retrieve_keys},
        )
        return params, retrieve_params

    def _client_for(self, params: CloudIndexParams, overrides: dict[str, Any]) -> Any:
        if not _CONNECTION_KEYS & overrides.keys():
            return self.client
        config = CloudConfig()
        client = PlatformClient(
            params.base_url or getattr(self.client, "base_url", config.base_url),
            params.api_key or getattr(self.client, "api_key", None),
            timeout_seconds=getattr(self.client, "timeout_seconds", config.timeout_seconds),
        )
        self.derived_clients.append(client)
        return client

    async def aclose(self) -> None:
        """Close the clients built for connection overrides.

        The shared client is left open; it belongs to whoever created it.
        """
        while self.derived_clients:
            await self.derived_clients.pop().aclose()

    def as_retriever(self, **overrides: Any) -> CloudRetriever:
        """Create a retriever bound to this pipeline.

        Keyword arguments override fields of ``CloudIndexParams`` or
        ``RetrieveParams`` for the new retriever only; the handle keeps its
        own values.

        Raises:
            InvalidConfigurationError: If an override names an unknown field
        """
        params, retrieve_params = self._split_overrides(overrides)
        return CloudRetriever(
            client=self._client_for(params, overrides),
            params=params,
            retrieve_params=retrieve_params,
        )

    def as_query_engine(
        self,
        response_synthesizer: ResponseSynthesizer | None = None,
        pre_filters: dict[str, Any] | None = None,
        node_postprocessors: Sequence[NodePostprocessor] | None = None,
        **overrides: Any,
    ) -> CloudQueryEngine:
        """Create a retrieval-augmented query engine bound to this pipeline.

        Args:
            response_synthesizer: Answer synthesizer; a chat-model synthesizer
                is created when omitted
            pre_filters: Search filters used when the retriever has none
            node_postprocessors: Steps applied to retrieved documents in order
            **overrides: Parameter overrides, as for :meth:`as_retriever`
        """
        retriever = self.as_retriever(**overrides)
        if response_synthesizer is None:
            response_synthesizer = self.response_synthesizer or ChatResponseSynthesizer(
                config=self.synthesizer_config
            )
        return CloudQueryEngine(
            retriever,
            response_synthesizer=response_synthesizer,
            pre_filters=pre_filters,
            node_postprocessors=node_postprocessors,
            log_callback=self.runtime.log_callback,
        )

    async def ainsert(self, document: Document) -> None:
        """Append one document to the pipeline."""
        pipeline_id = self._require_pipeline_id("insert a document")
        await self.client.create_documents(pipeline_id, [document.to_payload()])
        logger.debug(f"Inserted document {document.id_} into {pipeline_id}", subsystem="Index")

    def insert(self, document: Document) -> None:
        run_coro_sync(self.ainsert(document))

    async def adelete(self, document: Document | str) -> None:
        """Remove a document, given either the document or its ID."""
        pipeline_id = self._require_pipeline_id("delete a document")
        document_id = document if isinstance(document, str) else document.id_
        await self.client.delete_document(pipeline_id, document_id)
        logger.debug(f"Deleted document {document_id} from {pipeline_id}", subsystem="Index")

    def delete(self, document: Document | str) -> None:
        run_coro_sync(self.adelete(document))

    async def aget_status(self) -> PipelineStatus:
        """Fetch the pipeline's current ingestion status.

        The returned status carries the service's ``error`` details, which is
        where documents rejected during a partial success are reported.
        """
        pipeline_id = self._require_pipeline_id("get the pipeline status")
        return await self.client.get_pipeline_status(pipeline_id)

    def get_status(self) -> PipelineStatus:
        return run_coro_sync(self.aget_status())
