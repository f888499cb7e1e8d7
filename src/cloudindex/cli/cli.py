"""Command-line interface for managed indexes."""

import logging
import sys
from collections.abc import Awaitable, Callable
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

import httpx
import typer
from dotenv import load_dotenv
from langchain_core.documents import Document as LangChainDocument
from rich.progress import Progress, SpinnerColumn, TextColumn

from cloudindex.cli.output import Error, TableData, get_console, set_json_mode, write
from cloudindex.config import CloudConfig, PollingConfig, RuntimeOptions
from cloudindex.documents import Document
from cloudindex.factory import CloudIndexFactory
from cloudindex.retrieval.retriever import parse_query_filters
from cloudindex.utils.async_utils import run_coro_sync
from cloudindex.utils.exceptions import CloudIndexError
from cloudindex.utils.logging_utils import get_logger, setup_logging

logger = get_logger()

T = TypeVar("T")


class LogLevel(str, Enum):
    """Log levels for the CLI."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


app = typer.Typer(
    name="cloudindex",
    help="Ingest documents into managed indexes and query them",
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

MAX_K_VALUE = 50
DEFAULT_K = 6
TEXT_PREVIEW_LENGTH = 80


class GlobalState:
    """Global state for the CLI."""

    verbose: bool = False
    json_mode: bool = False
    base_url: str | None = None
    project_name: str | None = None
    log_file: str | None = None


state = GlobalState()

# Global factory provider - can be overridden for testing
_factory_provider: Callable[[CloudConfig, RuntimeOptions], CloudIndexFactory] = CloudIndexFactory


def set_factory_provider(provider: Callable[..., Any]) -> Callable[..., Any]:
    """Replace the factory provider and return the previous one (used for testing)."""
    global _factory_provider  # noqa: PLW0603
    previous = _factory_provider
    _factory_provider = provider
    return previous


LOG_LEVEL_OPTION = typer.Option(LogLevel.WARNING, "--log-level", "-l", help="Set the logging level")
JSON_OUTPUT_OPTION = typer.Option(None, "--json/--no-json", help="Output in JSON format")
LOG_FILE_OPTION = typer.Option(None, "--log-file", help="Also write JSON logs to this file")
BASE_URL_OPTION = typer.Option(
    None, "--base-url", help="API base URL (defaults to $LLAMA_CLOUD_BASE_URL)"
)
PROJECT_OPTION = typer.Option(None, "--project", help="Project name")
PIPELINE_ID_OPTION = typer.Option(..., "--pipeline-id", "-p", help="ID of the pipeline")
K_OPTION = typer.Option(
    DEFAULT_K, "--k", "-k", help="Number of nodes to retrieve", min=1, max=MAX_K_VALUE
)


def configure_logging(verbose: bool, log_level: LogLevel, log_file: str | None) -> None:
    """Configure logging based on CLI options."""
    level = getattr(logging, log_level.value)
    if verbose:
        level = min(level, logging.INFO)
    # Console logs stay human readable; the log file is always JSON
    setup_logging(log_file=log_file, log_level=level, json_logs=False)


@app.callback(rich_help_panel="Global Options")
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show ingestion progress"),
    log_level: LogLevel = LOG_LEVEL_OPTION,
    log_file: str | None = LOG_FILE_OPTION,
    json_output: bool | None = JSON_OUTPUT_OPTION,
    base_url: str | None = BASE_URL_OPTION,
    project: str | None = PROJECT_OPTION,
) -> None:
    """Managed index client.

    Credentials are read from LLAMA_CLOUD_API_KEY and OPENAI_API_KEY, or from
    a .env file in the working directory.
    """
    load_dotenv()

    json_mode = json_output if json_output is not None else not sys.stdout.isatty()
    set_json_mode(json_mode)
    state.json_mode = json_mode

    configure_logging(verbose, log_level, log_file)
    state.verbose = verbose
    state.log_file = log_file
    state.base_url = base_url
    state.project_name = project


def _build_factory(runtime: RuntimeOptions | None = None) -> CloudIndexFactory:
    config = CloudConfig.from_env(base_url=state.base_url, project_name=state.project_name)
    return _factory_provider(config, runtime or RuntimeOptions(verbose=state.verbose))


def _run(
    operation: Callable[[CloudIndexFactory], Awaitable[T]],
    runtime: RuntimeOptions | None = None,
) -> T:
    """Run *operation* with a fresh factory, mapping library errors to exit code 1."""
    factory = _build_factory(runtime)

    async def _main() -> T:
        try:
            return await operation(factory)
        finally:
            await factory.aclose()

    try:
        return run_coro_sync(_main())
    except CloudIndexError as e:
        write(Error(str(e)))
        raise typer.Exit(code=1) from e
    except httpx.TransportError as e:
        write(Error(f"Could not reach the service: {e}"))
        raise typer.Exit(code=1) from e


def load_documents(paths: list[Path]) -> list[Document]:
    """Load text files as documents, recursing into directories.

    The resolved path is used as the document ID so that ingesting the same
    file again replaces it.
    """
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(sorted(p for p in path.rglob("*") if p.is_file()))
        else:
            files.append(path)

    documents = []
    for file in files:
        try:
            text = file.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.warning(f"Skipping non-text file: {file}", subsystem="CLI")
            continue
        resolved = file.resolve()
        documents.append(
            Document(
                text=text,
                metadata={"file_path": str(resolved), "file_name": file.name},
                id_=str(resolved),
            )
        )
    return documents


def create_console_progress_callback(progress: Progress) -> Callable[[dict[str, Any]], None]:
    """Create a progress callback that updates a console spinner per stage."""
    tasks: dict[str, Any] = {}

    def update_progress(progress_info: dict[str, Any]) -> None:
        stage = progress_info.get("stage", "processing")
        message = progress_info.get("message", "")
        description = f"[cyan]{stage}[/cyan]: {message} (check {progress_info.get('current', 0)})"
        if stage not in tasks:
            tasks[stage] = progress.add_task(description, total=progress_info.get("total"))
        progress.update(
            tasks[stage], description=description, completed=progress_info.get("current", 0)
        )

    return update_progress


def _preview(text: str) -> str:
    text = " ".join(text.split())
    if len(text) <= TEXT_PREVIEW_LENGTH:
        return text
    return text[: TEXT_PREVIEW_LENGTH - 3] + "..."


def _format_score(score: Any) -> str:
    return f"{score:.3f}" if isinstance(score, int | float) else "-"


def _sources(documents: list[LangChainDocument]) -> list[dict[str, Any]]:
    return [
        {
            "id": doc.id,
            "score": doc.metadata.get("score"),
            "file_name": doc.metadata.get("file_name"),
            "excerpt": _preview(doc.page_content),
        }
        for doc in documents
    ]


@app.command()
def ingest(
    paths: list[Path] = typer.Argument(
        ..., help="Files or directories to ingest", exists=True, resolve_path=True
    ),
    name: str = typer.Option(..., "--name", "-n", help="Name of the pipeline"),
    interval: float = typer.Option(1.0, "--interval", help="Seconds between status checks", min=0.0),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Give up waiting for ingestion after this many seconds"
    ),
    max_attempts: int | None = typer.Option(
        None, "--max-attempts", help="Give up after this many status checks", min=1
    ),
) -> None:
    """Ingest files into a managed pipeline and wait until they are indexed."""
    documents = load_documents(paths)
    if not documents:
        write(Error("No text documents found"))
        raise typer.Exit(code=1)

    polling = PollingConfig(
        interval_seconds=interval, timeout_seconds=timeout, max_attempts=max_attempts
    )
    logger.info(f"Ingesting {len(documents)} documents into '{name}'", subsystem="CLI")

    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        console=get_console(),
        transient=True,
        disable=not state.verbose,
    ) as progress:
        runtime = RuntimeOptions(
            verbose=state.verbose,
            progress_callback=create_console_progress_callback(progress),
        )
        index = _run(lambda factory: factory.ingest(documents, name, polling=polling), runtime)

    write(
        {
            "pipeline_id": index.pipeline_id,
            "project_id": index.project_id,
            "status": index.outcome.status if index.outcome else None,
            "documents": len(documents),
            "deep_link": index.deep_link,
        }
    )


@app.command()
def retrieve(
    query_text: str = typer.Argument(
        ..., help="Query; filter:field=value directives become metadata filters"
    ),
    pipeline_id: str = PIPELINE_ID_OPTION,
    k: int = K_OPTION,
) -> None:
    """Retrieve the nodes most similar to a query."""
    clean_query, filters = parse_query_filters(query_text)

    async def _retrieve(factory: CloudIndexFactory) -> list[LangChainDocument]:
        retriever = factory.connect(pipeline_id).as_retriever(
            similarity_top_k=k, filters=filters
        )
        return await retriever.ainvoke(clean_query)

    documents = _run(_retrieve)
    table: TableData = {
        "title": f"Results for: {clean_query}",
        "columns": ["#", "Score", "File", "Text"],
        "rows": [
            [
                str(i),
                _format_score(doc.metadata.get("score")),
                str(doc.metadata.get("file_name", "")),
                _preview(doc.page_content),
            ]
            for i, doc in enumerate(documents, start=1)
        ],
    }
    write(table)


@app.command()
def query(
    question: str = typer.Argument(
        ..., help="Question; filter:field=value directives become metadata filters"
    ),
    pipeline_id: str = PIPELINE_ID_OPTION,
    k: int = K_OPTION,
) -> None:
    """Answer a question from the documents of a pipeline."""
    clean_question, filters = parse_query_filters(question)

    async def _query(factory: CloudIndexFactory) -> Any:
        engine = factory.connect(pipeline_id).as_query_engine(
            similarity_top_k=k, filters=filters
        )
        return await engine.aquery(clean_question)

    response = _run(_query)
    write(
        {
            "query": clean_question,
            "answer": response.answer,
            "sources": _sources(response.source_documents),
        }
    )


@app.command()
def insert(
    path: Path = typer.Argument(
        ..., help="Text file to insert", exists=True, dir_okay=False, resolve_path=True
    ),
    pipeline_id: str = PIPELINE_ID_OPTION,
) -> None:
    """Insert one file into an existing pipeline."""
    documents = load_documents([path])
    if not documents:
        write(Error(f"Not a text file: {path}"))
        raise typer.Exit(code=1)
    document = documents[0]
    _run(lambda factory: factory.connect(pipeline_id).ainsert(document))
    write({"inserted": document.id_, "pipeline_id": pipeline_id})


@app.command()
def delete(
    document_id: str = typer.Argument(..., help="ID of the document to delete"),
    pipeline_id: str = PIPELINE_ID_OPTION,
) -> None:
    """Delete a document from a pipeline."""
    _run(lambda factory: factory.connect(pipeline_id).adelete(document_id))
    write({"deleted": document_id, "pipeline_id": pipeline_id})


@app.command()
def status(pipeline_id: str = PIPELINE_ID_OPTION) -> None:
    """Show the ingestion status of a pipeline."""
    pipeline_status = _run(lambda factory: factory.connect(pipeline_id).aget_status())
    write(
        {
            "pipeline_id": pipeline_id,
            "status": pipeline_status.status,
            "errors": pipeline_status.error or [],
        }
    )


def run_cli() -> None:
    app()


if __name__ == "__main__":
    run_cli()
