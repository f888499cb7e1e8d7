"""Default transformation steps.

When the caller does not provide any transformations the pipeline is created
with a sentence-aware node parser followed by an OpenAI embedding step.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cloudindex.transformations.base import TransformationStep

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


@dataclass(frozen=True)
class SentenceSplitterStep:
    """Split documents into nodes on sentence boundaries.

    Attributes:
        chunk_size: Target chunk size in tokens
        chunk_overlap: Token overlap between consecutive chunks
        include_metadata: Whether metadata counts toward the chunk size
        include_prev_next_rel: Whether nodes link to their neighbours
    """

    chunk_size: int = 1024
    chunk_overlap: int = 20
    include_metadata: bool = True
    include_prev_next_rel: bool = True

    @property
    def transformation_type(self) -> str:
        return "SENTENCE_AWARE_NODE_PARSER"

    def component(self) -> dict[str, Any]:
        return {
            "chunk_size": self.chunk_size,
            "chunk_overlap": self.chunk_overlap,
            "include_metadata": self.include_metadata,
            "include_prev_next_rel": self.include_prev_next_rel,
        }


@dataclass(frozen=True, repr=False)
class OpenAIEmbeddingStep:
    """Embed nodes with an OpenAI embedding model on the service side."""

    api_key: str = ""
    model_name: str = DEFAULT_EMBEDDING_MODEL

    @property
    def transformation_type(self) -> str:
        return "OPENAI_EMBEDDING"

    def component(self) -> dict[str, Any]:
        return {"model_name": self.model_name, "api_key": self.api_key}

    def __repr__(self) -> str:
        # Keep the key out of logs and tracebacks
        return f"OpenAIEmbeddingStep(model_name={self.model_name!r})"


def default_transformations(
    openai_api_key: str, embedding_model: str = DEFAULT_EMBEDDING_MODEL
) -> list[TransformationStep]:
    """Return the default ``[parser, embedder]`` pair.

    Args:
        openai_api_key: Key the service uses to call the embedding model
        embedding_model: OpenAI embedding model name
    """
    return [
        SentenceSplitterStep(),
        OpenAIEmbeddingStep(api_key=openai_api_key, model_name=embedding_model),
    ]
