"""
Pipeline editor data models.

Editor state (``PipelineGraph``, ``Step``) and the backend wire models.
"""

# Base models
from .base import (
    CamelModel,
    ExecutionStatus,
    LoadStrategy,
    ScriptType,
    StepExecutionStatus,
)

# Editor state
from .editor import (
    PipelineGraph,
    Position,
    Step,
    StepChanges,
    ValidationError,
    new_client_id,
)

# Backend wire models
from .pipeline import (
    CreatePipelineRequest,
    DatasetReference,
    ExecutionDetailResponse,
    PageResponse,
    PipelineDetailResponse,
    PipelineExecutionResponse,
    PipelineResponse,
    PipelineStepRequest,
    PipelineStepResponse,
    StepExecutionResponse,
    UpdatePipelineRequest,
)

__all__ = [
    "CamelModel",
    "CreatePipelineRequest",
    "DatasetReference",
    "ExecutionDetailResponse",
    "ExecutionStatus",
    "LoadStrategy",
    "PageResponse",
    "PipelineDetailResponse",
    "PipelineExecutionResponse",
    "PipelineGraph",
    "PipelineResponse",
    "PipelineStepRequest",
    "PipelineStepResponse",
    "Position",
    "ScriptType",
    "Step",
    "StepChanges",
    "StepExecutionResponse",
    "StepExecutionStatus",
    "UpdatePipelineRequest",
    "ValidationError",
    "new_client_id",
]
