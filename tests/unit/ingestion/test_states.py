"""Tests for the ingestion state machine."""

import pytest
from statemachine.exceptions import TransitionNotAllowed

from cloudindex.ingestion.states import IngestionStateMachine


def advance_to_polling(machine: IngestionStateMachine) -> None:
    machine.project_upserted()
    machine.pipeline_upserted()
    machine.documents_submitted()
    machine.start_polling()


def test_initial_state() -> None:
    machine = IngestionStateMachine("docs")
    assert machine.current_state == IngestionStateMachine.created
    assert not machine.finished
    assert machine.polls == 0


def test_forward_path_to_completed() -> None:
    machine = IngestionStateMachine("docs")
    advance_to_polling(machine)
    machine.poll()
    machine.poll()
    machine.succeed()

    assert machine.current_state == IngestionStateMachine.completed
    assert machine.finished
    assert machine.polls == 2


def test_partial_success_is_final() -> None:
    machine = IngestionStateMachine("docs")
    advance_to_polling(machine)
    machine.poll()
    machine.partially_succeed()

    assert machine.current_state == IngestionStateMachine.degraded
    assert machine.finished


@pytest.mark.parametrize("steps", [0, 1, 2, 3, 4])
def test_fail_from_any_open_phase(steps: int) -> None:
    machine = IngestionStateMachine("docs")
    transitions = [
        machine.project_upserted,
        machine.pipeline_upserted,
        machine.documents_submitted,
        machine.start_polling,
    ]
    for transition in transitions[:steps]:
        transition()

    machine.fail()

    assert machine.current_state == IngestionStateMachine.failed


def test_phases_cannot_be_skipped() -> None:
    machine = IngestionStateMachine("docs")
    with pytest.raises(TransitionNotAllowed):
        machine.documents_submitted()


def test_no_transition_out_of_final_state() -> None:
    machine = IngestionStateMachine("docs")
    advance_to_polling(machine)
    machine.succeed()
    with pytest.raises(TransitionNotAllowed):
        machine.fail()
