"""cloudindex: managed index client.

This package hands documents to a managed ingestion service, waits for the
service to index them and queries the resulting index through LangChain
retrievers and a retrieval-augmented query engine.
"""

from .config import CloudConfig, CloudIndexParams, PollingConfig, RetrieveParams, RuntimeOptions
from .documents import Document
from .factory import CloudIndexFactory, ComponentOverrides
from .index import CloudIndex
from .ingestion import IngestionOrchestrator, IngestionOutcome

__all__ = [
    "CloudConfig",
    "CloudIndex",
    "CloudIndexFactory",
    "CloudIndexParams",
    "ComponentOverrides",
    "Document",
    "IngestionOrchestrator",
    "IngestionOutcome",
    "PollingConfig",
    "RetrieveParams",
    "RuntimeOptions",
]
