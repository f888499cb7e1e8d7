"""Pytest configuration for the cloudindex tests.

This module provides common fixtures and configuration for the tests.
"""

import os
from collections.abc import Generator

import pytest
from pytest_socket import disable_socket, enable_socket

from cloudindex.client.fakes import FakePlatformClient
from cloudindex.documents import Document


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (not run by default)"
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests by directory and run unit tests before integration tests."""
    unit_tests = []
    other_tests = []
    for item in items:
        if "/unit/" in str(item.path):
            item.add_marker(pytest.mark.unit)
            unit_tests.append(item)
        else:
            if "/integration/" in str(item.path):
                item.add_marker(pytest.mark.integration)
            other_tests.append(item)
    items[:] = unit_tests + other_tests


def pytest_runtest_setup(item: pytest.Item) -> None:
    """Set directory-based timeouts for tests.

    Unit tests get 2s each, integration tests 30s. In CI environments the
    timeouts are multiplied by CI_TIMEOUT_MULTIPLIER. Individual
    ``@pytest.mark.timeout()`` decorators override these defaults.
    """
    if item.get_closest_marker("timeout"):
        return

    is_ci = any(
        os.environ.get(var)
        for var in ["CI", "GITHUB_ACTIONS", "JENKINS_URL", "BUILDKITE", "TF_BUILD"]
    )
    ci_multiplier = float(os.environ.get("CI_TIMEOUT_MULTIPLIER", "5.0")) if is_ci else 1.0

    test_path = str(item.path)
    if "/unit/" in test_path:
        item.add_marker(pytest.mark.timeout(2.0 * ci_multiplier))
    elif "/integration/" in test_path:
        item.add_marker(pytest.mark.timeout(30 * ci_multiplier))


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Use dummy credentials and keep telemetry off."""
    monkeypatch.setenv("LLAMA_CLOUD_API_KEY", "llx-dummy-key-for-testing")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-dummy-key-for-testing")
    monkeypatch.delenv("LLAMA_CLOUD_BASE_URL", raising=False)
    monkeypatch.setenv("DO_NOT_TRACK", "true")
    monkeypatch.setenv("LANGSMITH_TRACING", "false")


@pytest.fixture(autouse=True)
def disable_network(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    """Disable network access for tests unless marked as integration."""
    if "integration" not in request.keywords:
        disable_socket(allow_unix_socket=True)
        yield
        enable_socket()
    else:
        yield


class RecordingSleep:
    """Async sleep replacement that records delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_client() -> FakePlatformClient:
    return FakePlatformClient()


@pytest.fixture
def sample_documents() -> list[Document]:
    """Create sample documents for testing."""
    return [
        Document(
            text="This is a sample document about artificial intelligence.",
            metadata={"source": "sample1.txt"},
            id_="doc-1",
        ),
        Document(
            text=(
                "Machine learning is a subset of artificial intelligence that "
                "focuses on building systems that learn from data."
            ),
            metadata={"source": "sample2.txt"},
            id_="doc-2",
            excluded_llm_metadata_keys=["source"],
        ),
    ]
