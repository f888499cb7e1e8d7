"""Client package for the managed index REST API."""

from cloudindex.client.gateway import PlatformClient, PlatformClientProtocol
from cloudindex.client.models import (
    ManagedIngestionStatus,
    Pipeline,
    PipelineStatus,
    Project,
    RetrieveResponse,
)

__all__ = [
    "ManagedIngestionStatus",
    "Pipeline",
    "PipelineStatus",
    "PlatformClient",
    "PlatformClientProtocol",
    "Project",
    "RetrieveResponse",
]
