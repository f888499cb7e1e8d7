"""Retrieval-augmented query engine over a managed pipeline.

A query runs in three stages: the retriever fetches scored documents from the
service, the node postprocessors filter or reorder them in the given order,
and the response synthesizer writes the answer.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from langchain_core.documents import Document

from cloudindex.retrieval.retriever import CloudRetriever
from cloudindex.retrieval.synthesizers import (
    ChatResponseSynthesizer,
    QueryResponse,
    ResponseSynthesizer,
)
from cloudindex.utils.async_utils import run_coro_sync
from cloudindex.utils.logging_utils import log_message


@runtime_checkable
class NodePostprocessor(Protocol):
    """Transforms the retrieved documents before synthesis."""

    def postprocess_documents(self, documents: list[Document], query: str) -> list[Document]:
        ...


class SimilarityCutoffPostprocessor:
    """Drops documents scoring below a threshold."""

    def __init__(self, similarity_cutoff: float) -> None:
        self.similarity_cutoff = similarity_cutoff

    def postprocess_documents(self, documents: list[Document], query: str) -> list[Document]:
        return [
            doc
            for doc in documents
            if doc.metadata.get("score") is not None
            and doc.metadata["score"] >= self.similarity_cutoff
        ]


class CloudQueryEngine:
    """Answers questions from the documents of one pipeline."""

    def __init__(
        self,
        retriever: CloudRetriever,
        response_synthesizer: ResponseSynthesizer | None = None,
        pre_filters: dict[str, Any] | None = None,
        node_postprocessors: Sequence[NodePostprocessor] | None = None,
        log_callback: Any | None = None,
    ) -> None:
        """Initialize the query engine.

        Args:
            retriever: Retriever bound to the pipeline
            response_synthesizer: Answer synthesizer, a chat-model synthesizer
                by default
            pre_filters: Search filters applied when the retriever has none
            node_postprocessors: Steps applied to retrieved documents in order
            log_callback: Optional callback for logging
        """
        if pre_filters is not None:
            retriever = retriever.model_copy(update={"pre_filters": pre_filters})
        self.retriever = retriever
        self.response_synthesizer = response_synthesizer or ChatResponseSynthesizer()
        self.node_postprocessors = list(node_postprocessors or [])
        self.log_callback = log_callback

    def _log(self, level: str, message: str) -> None:
        log_message(level, message, "QueryEngine", self.log_callback)

    async def aretrieve(self, query: str) -> list[Document]:
        """Retrieve and postprocess documents for *query*."""
        documents = await self.retriever.aretrieve(query)
        for postprocessor in self.node_postprocessors:
            documents = postprocessor.postprocess_documents(documents, query)
        self._log("DEBUG", f"Using {len(documents)} documents for: {query}")
        return documents

    async def aquery(self, query: str) -> QueryResponse:
        """Answer *query* from the pipeline's documents."""
        documents = await self.aretrieve(query)
        return await self.response_synthesizer.asynthesize(query, documents)

    def query(self, query: str) -> QueryResponse:
        return run_coro_sync(self.aquery(query))
