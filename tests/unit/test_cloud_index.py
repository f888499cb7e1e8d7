"""Tests for the index handle."""

import httpx
import pytest

from cloudindex.client.fakes import FakePlatformClient
from cloudindex.client.gateway import PlatformClient
from cloudindex.client.models import ManagedIngestionStatus
from cloudindex.config import CloudConfig, CloudIndexParams, RetrieveParams
from cloudindex.documents import Document
from cloudindex.index import CloudIndex
from cloudindex.retrieval import CloudQueryEngine, CloudRetriever
from cloudindex.retrieval.synthesizers import ChatResponseSynthesizer
from cloudindex.utils.exceptions import InvalidConfigurationError, PipelineNotInitializedError

PARAMS = CloudIndexParams(name="docs", pipeline_id="pipe-1", project_id="proj-1")


@pytest.fixture
def index(fake_client: FakePlatformClient) -> CloudIndex:
    return CloudIndex(PARAMS, fake_client)


@pytest.fixture
def uninitialized(fake_client: FakePlatformClient) -> CloudIndex:
    return CloudIndex(CloudIndexParams(name="docs"), fake_client)


class TestMissingPipelineId:
    """Pipeline-scoped operations fail before any remote call."""

    @pytest.mark.asyncio
    async def test_insert(self, uninitialized, fake_client) -> None:
        with pytest.raises(PipelineNotInitializedError):
            await uninitialized.ainsert(Document(text="hello"))
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_delete(self, uninitialized, fake_client) -> None:
        with pytest.raises(PipelineNotInitializedError):
            await uninitialized.adelete("doc-1")
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_status(self, uninitialized, fake_client) -> None:
        with pytest.raises(PipelineNotInitializedError):
            await uninitialized.aget_status()
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_retrieve(self, uninitialized, fake_client) -> None:
        retriever = uninitialized.as_retriever()
        with pytest.raises(PipelineNotInitializedError):
            await retriever.ainvoke("question")
        assert fake_client.calls == []

    def test_sync_insert(self, uninitialized, fake_client) -> None:
        with pytest.raises(PipelineNotInitializedError):
            uninitialized.insert(Document(text="hello"))
        assert fake_client.calls == []

    def test_error_is_a_configuration_error(self, uninitialized) -> None:
        with pytest.raises(PipelineNotInitializedError) as exc_info:
            uninitialized.delete("doc-1")
        assert exc_info.value.error_code == "PIPELINE_NOT_INITIALIZED"


class TestMutations:
    """Single-document insert and delete."""

    @pytest.mark.asyncio
    async def test_insert_then_delete_same_id(self, index, fake_client) -> None:
        document = Document(text="hello", id_="doc-42")

        await index.ainsert(document)
        await index.adelete(document)

        assert fake_client.operations() == ["create_documents", "delete_document"]
        insert_call, delete_call = fake_client.calls
        assert insert_call.args["documents"] == [document.to_payload()]
        assert insert_call.args["documents"][0]["id"] == "doc-42"
        assert delete_call.args == {"pipeline_id": "pipe-1", "document_id": "doc-42"}

    def test_sync_wrappers(self, index, fake_client) -> None:
        index.insert(Document(text="hello", id_="doc-1"))
        index.delete("doc-1")

        assert fake_client.operations() == ["create_documents", "delete_document"]
        assert fake_client.documents["pipe-1"] == {}

    @pytest.mark.asyncio
    async def test_get_status_reports_errors(self) -> None:
        client = FakePlatformClient(
            statuses=[ManagedIngestionStatus.PARTIAL_SUCCESS],
            status_error=[{"document_id": "doc-2"}],
        )
        index = CloudIndex(PARAMS, client)

        status = await index.aget_status()

        assert status.status == "PARTIAL_SUCCESS"
        assert status.error == [{"document_id": "doc-2"}]


class TestAsRetriever:
    """Adapters receive copies of the handle's parameters."""

    def test_overrides_do_not_leak(self, index) -> None:
        first = index.as_retriever(similarity_top_k=5)
        second = index.as_retriever(similarity_top_k=5)

        assert first is not second
        assert first.retrieve_params.similarity_top_k == 5
        assert second.retrieve_params.similarity_top_k == 5
        assert index.retrieve_params.similarity_top_k == RetrieveParams().similarity_top_k
        assert index.params == PARAMS

    def test_defaults_come_from_handle(self, fake_client) -> None:
        index = CloudIndex(PARAMS, fake_client, retrieve_params=RetrieveParams(similarity_top_k=3))

        retriever = index.as_retriever()

        assert isinstance(retriever, CloudRetriever)
        assert retriever.retrieve_params.similarity_top_k == 3
        assert retriever.params.pipeline_id == "pipe-1"
        assert retriever.client is fake_client

    def test_override_wins_on_index_params(self, index) -> None:
        retriever = index.as_retriever(pipeline_id="pipe-2")
        assert retriever.params.pipeline_id == "pipe-2"
        assert index.pipeline_id == "pipe-1"

    def test_unknown_override_rejected(self, index) -> None:
        with pytest.raises(InvalidConfigurationError):
            index.as_retriever(top_k=5)

    def test_connection_override_uses_new_client(self, index, fake_client) -> None:
        retriever = index.as_retriever(base_url="https://api.example.test")

        assert retriever.client is not fake_client
        assert isinstance(retriever.client, PlatformClient)
        assert retriever.client.base_url == "https://api.example.test"

    @pytest.mark.asyncio
    async def test_retrieve_sends_overrides(self, fake_client) -> None:
        fake_client.nodes = [(f"text {i}", {"n": i}, 1.0 - i / 10) for i in range(8)]
        index = CloudIndex(PARAMS, fake_client)

        documents = await index.as_retriever(similarity_top_k=5, alpha=0.5).ainvoke("question")

        assert len(documents) == 5
        request = fake_client.calls_to("retrieve")[0].args["request"]
        assert request["dense_similarity_top_k"] == 5
        assert request["alpha"] == 0.5


class TestAsQueryEngine:
    """Query engine construction."""

    def test_default_synthesizer(self, index) -> None:
        engine = index.as_query_engine()
        assert isinstance(engine, CloudQueryEngine)
        assert isinstance(engine.response_synthesizer, ChatResponseSynthesizer)

    def test_passes_components_through(self, index) -> None:
        synthesizer = ChatResponseSynthesizer(llm=object())
        filters = {"filters": [{"key": "lang", "value": "en", "operator": "=="}]}
        postprocessors = [object()]

        engine = index.as_query_engine(
            response_synthesizer=synthesizer,
            pre_filters=filters,
            node_postprocessors=postprocessors,
            similarity_top_k=2,
        )

        assert engine.response_synthesizer is synthesizer
        assert engine.retriever.pre_filters == filters
        assert engine.node_postprocessors == postprocessors
        assert engine.retriever.retrieve_params.similarity_top_k == 2


class TestFromDocuments:
    """Construction through the orchestrator."""

    @pytest.mark.asyncio
    async def test_from_documents(self, fake_client, sample_documents, recording_sleep) -> None:
        index = await CloudIndex.from_documents(
            sample_documents, fake_client, name="docs", sleep=recording_sleep
        )

        assert index.pipeline_id == "pipe-1"
        assert index.params.project_name == "default"
        assert fake_client.operations()[0] == "upsert_project"

    def test_from_documents_sync(self, fake_client, sample_documents, recording_sleep) -> None:
        index = CloudIndex.from_documents_sync(
            sample_documents, fake_client, name="docs", sleep=recording_sleep
        )
        assert index.pipeline_id == "pipe-1"

    @pytest.mark.asyncio
    async def test_from_documents_uses_config_project(
        self, fake_client, sample_documents, recording_sleep
    ) -> None:
        config = CloudConfig(api_key="llx-test", project_name="research")

        index = await CloudIndex.from_documents(
            sample_documents, fake_client, name="docs", config=config, sleep=recording_sleep
        )

        assert fake_client.calls_to("upsert_project")[0].args == {"name": "research"}
        assert index.params.project_name == "research"

    @pytest.mark.asyncio
    async def test_explicit_project_wins_over_config(
        self, fake_client, sample_documents, recording_sleep
    ) -> None:
        config = CloudConfig(api_key="llx-test", project_name="research")

        await CloudIndex.from_documents(
            sample_documents,
            fake_client,
            name="docs",
            project_name="archive",
            config=config,
            sleep=recording_sleep,
        )

        assert fake_client.calls_to("upsert_project")[0].args == {"name": "archive"}


class TestDerivedClients:
    """Clients built for connection overrides are closed with the handle."""

    @pytest.mark.asyncio
    async def test_aclose_closes_override_clients(self, index, fake_client) -> None:
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        )
        retriever = index.as_retriever(base_url="https://api.example.test")
        retriever.client._http = http

        assert index.derived_clients == [retriever.client]
        await index.aclose()

        assert http.is_closed
        assert index.derived_clients == []
        assert not fake_client.closed

    def test_shared_client_is_not_registered(self, index) -> None:
        index.as_retriever(similarity_top_k=3)
        index.as_query_engine(response_synthesizer=ChatResponseSynthesizer(llm=object()))
        assert index.derived_clients == []
