"""Synchronous wrappers driving the real HTTP gateway.

Pooled httpx connections belong to the event loop that opened them, so every
sync call has to run on the same loop. ``LoopBoundTransport`` enforces that
the way a real connection pool does.
"""

import asyncio
import json
from collections.abc import Callable, Generator

import httpx
import pytest

from cloudindex.client.gateway import PlatformClient
from cloudindex.config import CloudIndexParams
from cloudindex.documents import Document
from cloudindex.index import CloudIndex
from cloudindex.utils.async_utils import run_coro_sync

BASE_URL = "https://api.example.test"
PARAMS = CloudIndexParams(name="docs", pipeline_id="pipe-1", project_id="proj-1")


class LoopBoundTransport(httpx.AsyncBaseTransport):
    """In-memory transport tied to the first event loop that uses it."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.loop: asyncio.AbstractEventLoop | None = None
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        loop = asyncio.get_running_loop()
        if self.loop is None:
            self.loop = loop
        elif loop is not self.loop:
            raise RuntimeError(
                "Event loop is closed"
                if self.loop.is_closed()
                else "Connection used from another event loop"
            )
        await request.aread()
        self.requests.append(request)
        return self.handler(request)


def service(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/retrieve"):
        return httpx.Response(
            200,
            json={
                "retrieval_nodes": [
                    {"node": {"id_": "n-1", "text": "Paris", "metadata": {}}, "score": 0.9}
                ]
            },
        )
    if path.endswith("/status"):
        return httpx.Response(200, json={"status": "SUCCESS"})
    if request.method == "POST":
        return httpx.Response(200, json=[])
    return httpx.Response(204)


@pytest.fixture
def transport() -> LoopBoundTransport:
    return LoopBoundTransport(service)


@pytest.fixture
def index(transport: LoopBoundTransport) -> Generator[CloudIndex, None, None]:
    http = httpx.AsyncClient(base_url=BASE_URL, transport=transport)
    client = PlatformClient(BASE_URL, "llx-test", http_client=http)
    yield CloudIndex(PARAMS, client)
    run_coro_sync(http.aclose())


def test_insert_then_delete(index: CloudIndex, transport: LoopBoundTransport) -> None:
    document = Document(text="a new note", id_="doc-1")

    index.insert(document)
    index.delete(document)

    assert [(r.method, r.url.path) for r in transport.requests] == [
        ("POST", "/api/v1/pipelines/pipe-1/documents"),
        ("DELETE", "/api/v1/pipelines/pipe-1/documents/doc-1"),
    ]
    assert json.loads(transport.requests[0].content)[0]["id"] == "doc-1"


def test_retriever_invoked_twice(index: CloudIndex, transport: LoopBoundTransport) -> None:
    retriever = index.as_retriever(similarity_top_k=1)

    first = retriever.invoke("capital of France")
    second = retriever.invoke("capital of France")

    assert [doc.page_content for doc in first + second] == ["Paris", "Paris"]
    assert len(transport.requests) == 2


def test_status_then_insert(index: CloudIndex, transport: LoopBoundTransport) -> None:
    assert index.get_status().status == "SUCCESS"
    index.insert(Document(text="another note"))

    assert [r.method for r in transport.requests] == ["GET", "POST"]
