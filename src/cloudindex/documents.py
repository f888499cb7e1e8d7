"""Document model submitted to the managed index."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from langchain_core.documents import Document as LangChainDocument


@dataclass(frozen=True)
class Document:
    """A document to ingest.

    Attributes:
        text: Text body
        metadata: Metadata mapping of string keys to scalar values
        id_: Unique identifier, generated when not supplied
        excluded_llm_metadata_keys: Metadata keys hidden from the language model
        excluded_embed_metadata_keys: Metadata keys hidden from the embedding step
    """

    text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    id_: str = field(default_factory=lambda: str(uuid.uuid4()))
    excluded_llm_metadata_keys: list[str] = field(default_factory=list)
    excluded_embed_metadata_keys: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """Return the wire representation used by document batch calls."""
        return {
            "id": self.id_,
            "text": self.text,
            "metadata": dict(self.metadata),
            "excluded_llm_metadata_keys": list(self.excluded_llm_metadata_keys),
            "excluded_embed_metadata_keys": list(self.excluded_embed_metadata_keys),
        }

    @classmethod
    def from_langchain(cls, doc: LangChainDocument) -> Document:
        """Convert a LangChain document, keeping its ID when it has one."""
        if doc.id:
            return cls(text=doc.page_content, metadata=dict(doc.metadata), id_=doc.id)
        return cls(text=doc.page_content, metadata=dict(doc.metadata))
