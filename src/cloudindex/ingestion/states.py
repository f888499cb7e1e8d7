"""State machine for a document ingestion run.

A run moves strictly forward through its phases; each remote call must
complete before the next phase can be entered. ``fail`` is reachable from any
phase that is not final.
"""

from __future__ import annotations

from statemachine import State, StateMachine

from cloudindex.utils.logging_utils import get_logger

logger = get_logger()


class IngestionStateMachine(StateMachine):
    """Phases of an ingestion run."""

    created = State(initial=True)
    project_ready = State()
    pipeline_ready = State()
    submitted = State()
    polling = State()
    completed = State(final=True)
    degraded = State(final=True)
    failed = State(final=True)

    project_upserted = created.to(project_ready)
    pipeline_upserted = project_ready.to(pipeline_ready)
    documents_submitted = pipeline_ready.to(submitted)
    start_polling = submitted.to(polling)
    poll = polling.to.itself()
    succeed = polling.to(completed)
    partially_succeed = polling.to(degraded)
    fail = (
        created.to(failed)
        | project_ready.to(failed)
        | pipeline_ready.to(failed)
        | submitted.to(failed)
        | polling.to(failed)
    )

    def __init__(self, pipeline_name: str) -> None:
        self.pipeline_name = pipeline_name
        self.polls = 0
        super().__init__()

    @property
    def finished(self) -> bool:
        return self.current_state.final

    def on_poll(self) -> None:
        self.polls += 1

    def after_transition(self, event: str, source: State, target: State) -> None:
        if source != target:
            logger.debug(
                f"Ingestion of '{self.pipeline_name}': {source.id} -> {target.id} ({event})",
                subsystem="Ingestion",
            )
