"""Ingestion of documents into managed pipelines."""

from cloudindex.ingestion.orchestrator import IngestionOrchestrator, IngestionOutcome
from cloudindex.ingestion.states import IngestionStateMachine

__all__ = ["IngestionOrchestrator", "IngestionOutcome", "IngestionStateMachine"]
