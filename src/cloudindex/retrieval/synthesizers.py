"""Answer synthesis over retrieved documents."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from langchain_core.documents import Document
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.prompts import PromptTemplate
from pydantic import SecretStr

from cloudindex.config import SynthesizerConfig

SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer the user's question using ONLY the "
    "provided context. If the context is insufficient, respond with "
    "'I don't know based on the provided context.' Do not fabricate answers. "
    "Cite sources in square brackets (e.g. [1]) when relevant."
)

QUESTION_PROMPT = PromptTemplate.from_template(
    "Context:\n{context}\n\nQuestion:\n{question}\n\nAnswer:"
)


@dataclass
class QueryResponse:
    """Answer to a query together with the documents it was built from."""

    answer: str
    source_documents: list[Document] = field(default_factory=list)

    def __str__(self) -> str:
        return self.answer


@runtime_checkable
class ResponseSynthesizer(Protocol):
    """Turns a question and retrieved documents into an answer."""

    async def asynthesize(self, query: str, documents: Sequence[Document]) -> QueryResponse:
        ...


def pack_documents(documents: Sequence[Document], max_chars: int) -> list[Document]:
    """Return the leading documents whose text fits within *max_chars*."""
    packed: list[Document] = []
    used = 0
    for doc in documents:
        size = len(doc.page_content)
        if used + size > max_chars:
            break
        packed.append(doc)
        used += size
    return packed


def format_context(documents: Sequence[Document]) -> str:
    return "\n\n---\n\n".join(
        f"[{i}] {doc.page_content}" for i, doc in enumerate(documents, start=1)
    )


class ChatResponseSynthesizer:
    """Synthesizes answers with a LangChain chat model."""

    def __init__(
        self,
        llm: Any | None = None,
        config: SynthesizerConfig | None = None,
        openai_api_key: str | None = None,
    ) -> None:
        """Initialize the synthesizer.

        Args:
            llm: Chat model to use; a ``ChatOpenAI`` model is created on first
                use when omitted
            config: Model name, temperature and context budget
            openai_api_key: Key for the default chat model
        """
        self.config = config or SynthesizerConfig()
        self._llm = llm
        self._openai_api_key = openai_api_key

    @property
    def llm(self) -> Any:
        if self._llm is None:
            from langchain_openai import ChatOpenAI

            api_key_secret = None
            if self._openai_api_key:
                api_key_secret = SecretStr(self._openai_api_key)
            self._llm = ChatOpenAI(
                model=self.config.model,
                temperature=self.config.temperature,
                api_key=api_key_secret,
            )
        return self._llm

    async def asynthesize(self, query: str, documents: Sequence[Document]) -> QueryResponse:
        packed = pack_documents(documents, self.config.max_context_chars)
        messages = [
            SystemMessage(content=SYSTEM_PROMPT),
            HumanMessage(
                content=QUESTION_PROMPT.format(context=format_context(packed), question=query)
            ),
        ]
        result = await self.llm.ainvoke(messages)
        answer = result.content if hasattr(result, "content") else str(result)
        return QueryResponse(answer=str(answer), source_documents=packed)
