"""Tests for the CloudIndexFactory."""

import httpx
import pytest
from langchain_core.language_models import FakeListChatModel

from cloudindex.client.fakes import FakePlatformClient
from cloudindex.client.gateway import PlatformClient
from cloudindex.client.models import ManagedIngestionStatus
from cloudindex.config import CloudConfig, PollingConfig, RuntimeOptions
from cloudindex.factory import CloudIndexFactory, ComponentOverrides

CONFIG = CloudConfig(
    api_key="llx-test",
    base_url="https://api.example.test",
    openai_api_key="sk-test",
    project_name="research",
)


def test_factory_creates_real_client() -> None:
    factory = CloudIndexFactory(CONFIG)

    client = factory.client

    assert isinstance(client, PlatformClient)
    assert client.base_url == "https://api.example.test"
    assert client.api_key == "llx-test"
    assert factory.client is client


def test_factory_uses_injected_dependencies() -> None:
    fake = FakePlatformClient()
    llm = FakeListChatModel(responses=["answer"])
    factory = CloudIndexFactory(CONFIG, overrides=ComponentOverrides(client=fake, chat_model=llm))

    assert factory.client is fake
    assert factory.synthesizer().llm is llm
    assert factory.orchestrator().client is fake


def test_connect_shares_client() -> None:
    fake = FakePlatformClient()
    factory = CloudIndexFactory(CONFIG, overrides=ComponentOverrides(client=fake))

    index = factory.connect("pipe-9", project_id="proj-9")

    assert index.client is fake
    assert index.pipeline_id == "pipe-9"
    assert index.params.project_name == "research"
    assert index.deep_link == "https://example.test/project/proj-9/deploy/pipe-9"
    assert fake.calls == []


@pytest.mark.asyncio
async def test_ingest_and_query_end_to_end(sample_documents, recording_sleep) -> None:
    fake = FakePlatformClient(
        statuses=["PENDING", ManagedIngestionStatus.SUCCESS],
        nodes=[("AI is a field of computer science.", {"source": "sample1.txt"}, 0.8)],
    )
    overrides = ComponentOverrides(
        client=fake,
        chat_model=FakeListChatModel(responses=["A field of CS [1]"]),
        sleep=recording_sleep,
    )
    factory = CloudIndexFactory(CONFIG, RuntimeOptions(), overrides)

    index = await factory.ingest(sample_documents, "docs", polling=PollingConfig(interval_seconds=0.5))
    response = await index.as_query_engine().aquery("What is AI?")
    await factory.aclose()

    assert recording_sleep.delays == [0.5]
    assert fake.calls_to("upsert_project")[0].args == {"name": "research"}
    assert response.answer == "A field of CS [1]"
    assert response.source_documents[0].metadata["score"] == 0.8
    assert fake.closed


@pytest.mark.asyncio
async def test_aclose_closes_override_clients() -> None:
    fake = FakePlatformClient()
    factory = CloudIndexFactory(CONFIG, overrides=ComponentOverrides(client=fake))
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
    )

    # The handle is dropped; the factory still owns the client it registered
    retriever = factory.connect("pipe-9").as_retriever(base_url="https://other.example.test")
    retriever.client._http = http
    await factory.aclose()

    assert http.is_closed
    assert fake.closed
