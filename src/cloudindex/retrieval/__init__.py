"""Retrieval and question answering over managed pipelines."""

from cloudindex.retrieval.query_engine import (
    CloudQueryEngine,
    NodePostprocessor,
    SimilarityCutoffPostprocessor,
)
from cloudindex.retrieval.retriever import CloudRetriever, parse_query_filters
from cloudindex.retrieval.synthesizers import (
    ChatResponseSynthesizer,
    QueryResponse,
    ResponseSynthesizer,
)

__all__ = [
    "ChatResponseSynthesizer",
    "CloudQueryEngine",
    "CloudRetriever",
    "NodePostprocessor",
    "QueryResponse",
    "ResponseSynthesizer",
    "SimilarityCutoffPostprocessor",
    "parse_query_filters",
]
