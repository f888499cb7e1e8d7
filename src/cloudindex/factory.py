"""Composition root for the managed index client.

``CloudIndexFactory`` builds the shared gateway client once and wires it into
the orchestrator, index handles and answer synthesizers. Tests replace
components through ``ComponentOverrides``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from cloudindex.client.gateway import PlatformClient, PlatformClientProtocol
from cloudindex.config import (
    CloudConfig,
    CloudIndexParams,
    PollingConfig,
    RetrieveParams,
    RuntimeOptions,
    SynthesizerConfig,
)
from cloudindex.documents import Document
from cloudindex.index import CloudIndex
from cloudindex.ingestion.orchestrator import IngestionOrchestrator
from cloudindex.retrieval.synthesizers import ChatResponseSynthesizer
from cloudindex.transformations import TransformationStep
from cloudindex.utils.async_utils import SleepFunc
from cloudindex.utils.logging_utils import get_logger

logger = get_logger()


@dataclass
class ComponentOverrides:
    """Optional component overrides for dependency injection.

    This allows for easy testing by injecting fake implementations.
    """

    client: PlatformClientProtocol | None = None
    chat_model: Any | None = None  # Any LangChain chat model interface
    sleep: SleepFunc | None = None


class CloudIndexFactory:
    """Factory wiring the client, orchestrator and index handles together."""

    def __init__(
        self,
        config: CloudConfig,
        runtime: RuntimeOptions | None = None,
        overrides: ComponentOverrides | None = None,
        synthesizer_config: SynthesizerConfig | None = None,
    ) -> None:
        """Initialize the factory with configuration and optional overrides.

        Args:
            config: Connection configuration
            runtime: Runtime options shared by every component
            overrides: Optional component overrides for testing
            synthesizer_config: Configuration of the default answer synthesizer
        """
        self.config = config
        self.runtime = runtime or RuntimeOptions()
        self.overrides = overrides or ComponentOverrides()
        self.synthesizer_config = synthesizer_config or SynthesizerConfig()
        self._client: PlatformClientProtocol | None = self.overrides.client
        # Clients built by handles for base_url or api_key overrides
        self._derived_clients: list[Any] = []

    @property
    def client(self) -> PlatformClientProtocol:
        """Get or create the shared gateway client."""
        if self._client is None:
            self._client = PlatformClient(
                self.config.base_url,
                self.config.api_key or None,
                timeout_seconds=self.config.timeout_seconds,
            )
            logger.debug(f"Created client for {self.config.base_url}", subsystem="Factory")
        return self._client

    def orchestrator(self, polling: PollingConfig | None = None) -> IngestionOrchestrator:
        """Create an ingestion orchestrator using the shared client."""
        kwargs: dict[str, Any] = {}
        if self.overrides.sleep is not None:
            kwargs["sleep"] = self.overrides.sleep
        return IngestionOrchestrator(
            self.client, self.config, polling, self.runtime, **kwargs
        )

    def synthesizer(self) -> ChatResponseSynthesizer:
        """Create the default answer synthesizer."""
        return ChatResponseSynthesizer(
            llm=self.overrides.chat_model,
            config=self.synthesizer_config,
            openai_api_key=self.config.openai_api_key or None,
        )

    async def ingest(
        self,
        documents: Sequence[Document],
        name: str,
        transformations: Sequence[TransformationStep] | None = None,
        polling: PollingConfig | None = None,
        verbose: bool | None = None,
    ) -> CloudIndex:
        """Ingest *documents* into the pipeline *name* and return its handle."""
        params = CloudIndexParams(
            name=name,
            project_name=self.config.project_name,
            base_url=self.config.base_url,
        )
        index = await self.orchestrator(polling).create_from_documents(
            documents, transformations, params, verbose=verbose
        )
        index.synthesizer_config = self.synthesizer_config
        index.derived_clients = self._derived_clients
        index.response_synthesizer = self.synthesizer()
        return index

    def connect(
        self,
        pipeline_id: str,
        name: str | None = None,
        project_id: str | None = None,
        retrieve_params: RetrieveParams | None = None,
    ) -> CloudIndex:
        """Return a handle on an existing pipeline without ingesting anything."""
        params = CloudIndexParams(
            name=name,
            project_name=self.config.project_name,
            base_url=self.config.base_url,
            pipeline_id=pipeline_id,
            project_id=project_id,
        )
        return CloudIndex(
            params,
            self.client,
            retrieve_params=retrieve_params,
            synthesizer_config=self.synthesizer_config,
            response_synthesizer=self.synthesizer(),
            runtime=self.runtime,
            derived_clients=self._derived_clients,
        )

    async def aclose(self) -> None:
        """Close the clients built by this factory and its index handles."""
        while self._derived_clients:
            await self._derived_clients.pop().aclose()
        if self._client is not None and hasattr(self._client, "aclose"):
            await self._client.aclose()
