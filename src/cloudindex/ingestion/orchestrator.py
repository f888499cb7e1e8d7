"""Ingestion orchestrator.

``IngestionOrchestrator`` turns a set of documents into a ready-to-use
``CloudIndex``: it upserts the project and the pipeline, submits the
documents in one batch and polls the pipeline status until the service
reports a terminal outcome.

The remote calls run strictly one after another. The polling loop waits a
fixed interval between status requests and, unless a bound is configured in
``PollingConfig``, keeps polling until a terminal status arrives; cancelling
the surrounding asyncio task stops it at the next suspension point.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_result, wait_fixed

from cloudindex.client.gateway import PlatformClientProtocol
from cloudindex.client.models import ManagedIngestionStatus, PipelineStatus
from cloudindex.config import CloudConfig, CloudIndexParams, PollingConfig, RuntimeOptions
from cloudindex.documents import Document
from cloudindex.index import CloudIndex
from cloudindex.ingestion.states import IngestionStateMachine
from cloudindex.transformations import (
    MANAGED_PIPELINE_TYPE,
    TransformationStep,
    build_pipeline_create,
    default_transformations,
)
from cloudindex.utils.async_utils import SleepFunc
from cloudindex.utils.exceptions import (
    IngestionFailedError,
    IngestionTimeoutError,
    MissingConfigurationError,
    MissingPipelineIdError,
    MissingProjectIdError,
)
from cloudindex.utils.logging_utils import log_message

SUBSYSTEM = "Ingestion"


@dataclass(frozen=True)
class IngestionOutcome:
    """Terminal result of an ingestion run.

    Attributes:
        status: Terminal status reported by the service
        polls: Number of status requests made
        deep_link: Dashboard page holding the pipeline's ingestion logs
        errors: Error details the service attached to the final status
    """

    status: str
    polls: int
    deep_link: str | None = None
    errors: list[Any] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        """True when some documents may be missing from the index."""
        return self.status == ManagedIngestionStatus.PARTIAL_SUCCESS


class IngestionOrchestrator:
    """Creates managed indexes from documents."""

    def __init__(
        self,
        client: PlatformClientProtocol,
        config: CloudConfig | None = None,
        polling: PollingConfig | None = None,
        runtime: RuntimeOptions | None = None,
        *,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: Gateway to the managed index service
            config: Connection configuration supplying defaults
            polling: Polling cadence and optional bounds
            runtime: Verbosity and callbacks
            sleep: Coroutine used to wait between polls
            clock: Monotonic clock used for the polling timeout
        """
        self.client = client
        self.config = config or CloudConfig()
        self.polling = polling or PollingConfig()
        self.runtime = runtime or RuntimeOptions()
        self._sleep = sleep
        self._clock = clock

    def _log(self, level: str, message: str) -> None:
        log_message(level, message, SUBSYSTEM, self.runtime.log_callback)

    def resolve_transformations(
        self, transformations: Sequence[TransformationStep] | None
    ) -> list[TransformationStep]:
        """Return the caller's steps, or the default pair when there are none."""
        if transformations:
            return list(transformations)
        return default_transformations(self.config.openai_api_key)

    async def create_from_documents(
        self,
        documents: Sequence[Document],
        transformations: Sequence[TransformationStep] | None = None,
        params: CloudIndexParams | None = None,
        verbose: bool | None = None,
    ) -> CloudIndex:
        """Ingest *documents* into a managed pipeline and return its index.

        Args:
            documents: Documents to submit
            transformations: Processing steps in execution order; the default
                parser and embedder are used when empty
            params: Pipeline name, project name and connection overrides
            verbose: Override ``RuntimeOptions.verbose`` for this run

        Returns:
            A ``CloudIndex`` bound to the resolved pipeline

        Raises:
            MissingConfigurationError: If no pipeline name is given
            MissingProjectIdError: If the project upsert returns no ID
            MissingPipelineIdError: If the pipeline upsert returns no ID
            IngestionFailedError: If the service reports an ingestion error
            IngestionTimeoutError: If a configured polling bound is exceeded
        """
        params = params or CloudIndexParams(project_name=self.config.project_name)
        if not params.name:
            raise MissingConfigurationError("name")
        verbose = self.runtime.verbose if verbose is None else verbose

        machine = IngestionStateMachine(params.name)
        steps = self.resolve_transformations(transformations)
        params = replace(params, base_url=params.base_url or self.config.base_url)
        pipeline_create = build_pipeline_create(
            params.name, MANAGED_PIPELINE_TYPE, documents, steps
        )

        try:
            project = await self.client.upsert_project(params.project_name)
            if not project.id:
                raise MissingProjectIdError(params.project_name)
            machine.project_upserted()

            pipeline = await self.client.upsert_pipeline(
                project.id, pipeline_create.to_request()
            )
            if not pipeline.id:
                raise MissingPipelineIdError(params.name, project.id)
            machine.pipeline_upserted()

            params = replace(params, project_id=project.id, pipeline_id=pipeline.id)
            if verbose:
                self._log("INFO", f"Created pipeline {pipeline.id} with name {params.name}")

            await self.client.upsert_documents(
                pipeline.id, [doc.to_payload() for doc in documents]
            )
            machine.documents_submitted()
            self._log(
                "DEBUG",
                f"Submitted {pipeline_create.document_count} documents to pipeline {pipeline.id}",
            )

            outcome = await self._wait_for_ingestion(machine, params, pipeline.id, verbose)
        except (Exception, asyncio.CancelledError):
            if not machine.finished:
                machine.fail()
            raise

        if verbose:
            self._log("INFO", f"Ingestion completed, find your index at {params.deep_link}")

        return CloudIndex(params, self.client, runtime=self.runtime, outcome=outcome)

    def _should_stop(self, started: float) -> Callable[[RetryCallState], bool]:
        def stop(retry_state: RetryCallState) -> bool:
            if (
                self.polling.max_attempts is not None
                and retry_state.attempt_number >= self.polling.max_attempts
            ):
                return True
            # Give up now if the next check would land past the deadline
            next_check = self._clock() - started + self.polling.interval_seconds
            return (
                self.polling.timeout_seconds is not None
                and next_check > self.polling.timeout_seconds
            )

        return stop

    def _report_progress(self, retry_state: RetryCallState, verbose: bool) -> None:
        status: PipelineStatus = retry_state.outcome.result()  # type: ignore[union-attr]
        if verbose:
            self._log(
                "INFO",
                f"Waiting for ingestion (status: {status.status}, check {retry_state.attempt_number})",
            )
        if self.runtime.progress_callback:
            self.runtime.progress_callback(
                {
                    "stage": "ingestion",
                    "current": retry_state.attempt_number,
                    "total": self.polling.max_attempts,
                    "message": status.status,
                }
            )

    async def _wait_for_ingestion(
        self,
        machine: IngestionStateMachine,
        params: CloudIndexParams,
        pipeline_id: str,
        verbose: bool,
    ) -> IngestionOutcome:
        deep_link = params.deep_link
        started = self._clock()
        machine.start_polling()

        async def check_status() -> PipelineStatus:
            machine.poll()
            return await self.client.get_pipeline_status(pipeline_id)

        retrying = AsyncRetrying(
            retry=retry_if_result(lambda status: not status.is_terminal),
            wait=wait_fixed(self.polling.interval_seconds),
            stop=self._should_stop(started),
            sleep=self._sleep,
            before_sleep=lambda retry_state: self._report_progress(retry_state, verbose),
        )

        try:
            status = await retrying(check_status)
        except RetryError as exc:
            machine.fail()
            raise IngestionTimeoutError(
                pipeline_id,
                attempts=exc.last_attempt.attempt_number,
                elapsed_seconds=self._clock() - started,
                deep_link=deep_link,
            ) from exc

        outcome = IngestionOutcome(
            status=status.status,
            polls=machine.polls,
            deep_link=deep_link,
            errors=list(status.error or []),
        )

        if status.status == ManagedIngestionStatus.ERROR:
            self._log(
                "ERROR",
                f"Some documents failed to ingest, check your pipeline logs at {deep_link}",
            )
            machine.fail()
            raise IngestionFailedError(pipeline_id, deep_link, details=outcome.errors)

        if status.status == ManagedIngestionStatus.PARTIAL_SUCCESS:
            self._log(
                "WARNING",
                "Documents ingestion partially succeeded, to check a more complete "
                f"status check your pipeline at {deep_link}",
            )
            machine.partially_succeed()
            return outcome

        self._log("INFO", "Documents ingested successfully, pipeline is ready to use")
        machine.succeed()
        return outcome
