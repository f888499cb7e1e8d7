"""Transformation steps and the pipeline definition builder."""

from cloudindex.transformations.base import ConfiguredTransformation, TransformationStep
from cloudindex.transformations.defaults import (
    OpenAIEmbeddingStep,
    SentenceSplitterStep,
    default_transformations,
)
from cloudindex.transformations.pipeline_config import (
    MANAGED_PIPELINE_TYPE,
    PipelineCreate,
    build_pipeline_create,
)

__all__ = [
    "MANAGED_PIPELINE_TYPE",
    "ConfiguredTransformation",
    "OpenAIEmbeddingStep",
    "PipelineCreate",
    "SentenceSplitterStep",
    "TransformationStep",
    "build_pipeline_create",
    "default_transformations",
]
