"""LangChain retriever backed by a managed pipeline.

``CloudRetriever`` posts each query to the pipeline's retrieve endpoint and
converts the scored nodes into LangChain ``Document`` objects. The similarity
search itself runs on the service.
"""

from __future__ import annotations

import re
from typing import Any

from langchain_core.callbacks import (
    AsyncCallbackManagerForRetrieverRun,
    CallbackManagerForRetrieverRun,
)
from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever
from pydantic import ConfigDict

from cloudindex.client.models import RetrieveResponse
from cloudindex.config import CloudIndexParams, RetrieveParams
from cloudindex.utils.async_utils import run_coro_sync
from cloudindex.utils.exceptions import PipelineNotInitializedError
from cloudindex.utils.logging_utils import get_logger

logger = get_logger()

# filter:title="Hello World" filter:page=3
FILTER_PATTERN = r'filter:(\w+)=(?:"([^"]+)"|([^\s]+))'


def parse_query_filters(query: str) -> tuple[str, dict[str, Any] | None]:
    """Extract ``filter:field=value`` directives from *query*.

    Values can contain spaces if quoted: ``filter:field="value with spaces"``.

    Returns:
        Tuple of the query with the directives stripped and the search
        filters in ``MetadataFilters`` shape, or ``None`` when there are none
    """
    filters: list[dict[str, Any]] = []
    clean_query = query

    for match in re.finditer(FILTER_PATTERN, query):
        value = match.group(2) if match.group(2) is not None else match.group(3)
        filters.append({"key": match.group(1), "value": value, "operator": "=="})
        clean_query = clean_query.replace(match.group(0), "")

    clean_query = " ".join(clean_query.split())
    if not filters:
        return clean_query, None
    return clean_query, {"filters": filters, "condition": "and"}


def to_documents(response: RetrieveResponse) -> list[Document]:
    """Convert scored nodes to LangChain documents, score in metadata."""
    documents = []
    for scored in response.retrieval_nodes:
        metadata = dict(scored.node.metadata)
        metadata["score"] = scored.score
        documents.append(
            Document(page_content=scored.node.text, metadata=metadata, id=scored.node.id_)
        )
    return documents


class CloudRetriever(BaseRetriever):
    """Retriever bound to one managed pipeline.

    Attributes:
        client: Gateway client used for the retrieve call
        params: Identity of the pipeline
        retrieve_params: Parameters sent with every query
        pre_filters: Search filters used when ``retrieve_params`` has none
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    client: Any
    params: CloudIndexParams
    retrieve_params: RetrieveParams = RetrieveParams()
    pre_filters: dict[str, Any] | None = None

    @property
    def similarity_top_k(self) -> int:
        return self.retrieve_params.similarity_top_k

    async def aretrieve(self, query: str) -> list[Document]:
        """Run *query* against the pipeline without callbacks."""
        pipeline_id = self.params.pipeline_id
        if not pipeline_id:
            raise PipelineNotInitializedError("retrieve")
        request = self.retrieve_params.to_request(query, self.pre_filters)
        response = await self.client.retrieve(pipeline_id, request)
        documents = to_documents(response)
        logger.debug(
            f"Retrieved {len(documents)} nodes from {pipeline_id}", subsystem="Retriever"
        )
        return documents

    def _get_relevant_documents(
        self, query: str, *, run_manager: CallbackManagerForRetrieverRun
    ) -> list[Document]:
        return run_coro_sync(self.aretrieve(query))

    async def _aget_relevant_documents(
        self, query: str, *, run_manager: AsyncCallbackManagerForRetrieverRun
    ) -> list[Document]:
        return await self.aretrieve(query)
