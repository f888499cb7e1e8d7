"""Component-specific configuration dataclasses.

Each component gets a small frozen configuration object so that it can be
copied into adapters without the risk of one caller mutating another's view.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any

from cloudindex.config.main import DEFAULT_BASE_URL, app_url_from_base


@dataclass(frozen=True)
class PollingConfig:
    """Configuration for the ingestion status polling loop.

    With neither bound set the loop polls until the service reports a
    terminal status.

    Attributes:
        interval_seconds: Fixed delay between two status requests
        timeout_seconds: Optional upper bound on the time spent polling
        max_attempts: Optional upper bound on the number of status requests
    """

    interval_seconds: float = 1.0
    timeout_seconds: float | None = None
    max_attempts: int | None = None

    @property
    def bounded(self) -> bool:
        return self.timeout_seconds is not None or self.max_attempts is not None


@dataclass(frozen=True)
class CloudIndexParams:
    """Identity of a managed index.

    Attributes:
        name: Pipeline name
        project_name: Project the pipeline lives in
        base_url: API base URL, ``None`` to use the configured default
        api_key: API key, ``None`` to use the configured default
        pipeline_id: Service-assigned pipeline ID once resolved
        project_id: Service-assigned project ID once resolved
    """

    name: str | None = None
    project_name: str = "default"
    base_url: str | None = None
    api_key: str | None = None
    pipeline_id: str | None = None
    project_id: str | None = None

    @property
    def app_url(self) -> str:
        return app_url_from_base(self.base_url or DEFAULT_BASE_URL)

    @property
    def deep_link(self) -> str | None:
        """Dashboard page of the pipeline, holding its ingestion logs."""
        if not (self.project_id and self.pipeline_id):
            return None
        return f"{self.app_url}/project/{self.project_id}/deploy/{self.pipeline_id}"


@dataclass(frozen=True)
class RetrieveParams:
    """Retrieval parameters sent with every retrieve request.

    Attributes:
        similarity_top_k: Number of nodes returned by dense retrieval
        sparse_similarity_top_k: Number of nodes returned by sparse retrieval
        enable_reranking: Whether the service reranks the merged results
        rerank_top_n: Number of nodes kept after reranking
        alpha: Weight of dense retrieval in hybrid search
        filters: Metadata filters in the service's ``MetadataFilters`` shape
    """

    similarity_top_k: int = 6
    sparse_similarity_top_k: int | None = None
    enable_reranking: bool | None = None
    rerank_top_n: int | None = None
    alpha: float | None = None
    filters: dict[str, Any] | None = None

    def to_request(self, query: str, pre_filters: dict[str, Any] | None = None) -> dict[str, Any]:
        """Build the body of a retrieve request."""
        body: dict[str, Any] = {
            "query": query,
            "dense_similarity_top_k": self.similarity_top_k,
        }
        optional = {
            "sparse_similarity_top_k": self.sparse_similarity_top_k,
            "enable_reranking": self.enable_reranking,
            "rerank_top_n": self.rerank_top_n,
            "alpha": self.alpha,
            "search_filters": self.filters or pre_filters,
        }
        body.update({k: v for k, v in optional.items() if v is not None})
        return body


@dataclass(frozen=True)
class SynthesizerConfig:
    """Configuration for the default answer synthesizer.

    Attributes:
        model: Chat model name
        temperature: Sampling temperature
        max_context_chars: Character budget for the retrieved context
    """

    model: str = "gpt-4o-mini"
    temperature: float = 0.0
    max_context_chars: int = 12000


def field_names(cls: type) -> frozenset[str]:
    """Return the dataclass field names of *cls*."""
    return frozenset(f.name for f in fields(cls))


def to_dict(config: Any) -> dict[str, Any]:
    """Convert a configuration dataclass to a plain dictionary."""
    return asdict(config)
