"""Wire models for the pipeline backend REST API.

The backend keys step dependencies by step name (``dependsOnStepNames``); it
never sees the editor's client ids.
"""

from datetime import datetime
from typing import Any

from pydantic import Field

from .base import CamelModel, ExecutionStatus, LoadStrategy, ScriptType, StepExecutionStatus
from .editor import Position


class DatasetReference(CamelModel):
    """Dataset entry used to populate output/input dataset pickers."""

    id: int
    name: str
    table_name: str


class PageResponse[T](CamelModel):
    """Paginated list response."""

    content: list[T] = Field(default_factory=list)
    page: int = 0
    size: int = 0
    total_elements: int = 0
    total_pages: int = 0


class PipelineStepRequest(CamelModel):
    """Step as written on create/update."""

    name: str
    description: str | None = None
    script_type: ScriptType
    script_content: str = ""
    output_dataset_id: int | None = None
    input_dataset_ids: list[int] = Field(default_factory=list)
    depends_on_step_names: list[str] = Field(default_factory=list)
    load_strategy: LoadStrategy = LoadStrategy.REPLACE
    api_config: dict[str, Any] | None = None
    api_connection_id: int | None = None
    position: Position | None = None


class CreatePipelineRequest(CamelModel):
    """Body of ``POST /pipelines``."""

    name: str
    description: str | None = None
    steps: list[PipelineStepRequest]


class UpdatePipelineRequest(CamelModel):
    """Body of ``PUT /pipelines/{id}``."""

    name: str
    description: str | None = None
    is_active: bool | None = None
    steps: list[PipelineStepRequest]


class PipelineStepResponse(CamelModel):
    """Step as read back from the backend."""

    id: int | None = None
    name: str
    description: str | None = None
    script_type: ScriptType = ScriptType.SQL
    script_content: str | None = None
    output_dataset_id: int | None = None
    output_dataset_name: str | None = None
    input_dataset_ids: list[int] = Field(default_factory=list)
    depends_on_step_names: list[str] = Field(default_factory=list)
    step_order: int | None = None
    load_strategy: LoadStrategy | None = None
    api_config: dict[str, Any] | None = None
    api_connection_id: int | None = None
    position: Position | None = None


class PipelineResponse(CamelModel):
    """Pipeline list entry."""

    id: int
    name: str
    description: str | None = None
    is_active: bool = True
    created_by: str | None = None
    step_count: int = 0
    created_at: datetime | None = None


class PipelineDetailResponse(CamelModel):
    """Full persisted pipeline, the input of editor hydration.

    ``id`` is absent only for definitions that were never saved (e.g. files
    written by hand); hydrating one yields a new pipeline.
    """

    id: int | None = None
    name: str
    description: str | None = None
    is_active: bool = True
    steps: list[PipelineStepResponse] = Field(default_factory=list)
    created_by: str | None = None
    created_at: datetime | None = None
    updated_by: str | None = None
    updated_at: datetime | None = None


class PipelineExecutionResponse(CamelModel):
    """Execution list entry."""

    id: int
    pipeline_id: int
    status: ExecutionStatus
    executed_by: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None


class StepExecutionResponse(CamelModel):
    """Per-step execution record, consumed read-only by the status overlay."""

    id: int
    step_id: int | None = None
    step_name: str
    status: StepExecutionStatus
    output_rows: int | None = None
    log: str | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class ExecutionDetailResponse(CamelModel):
    """Execution with its step executions."""

    id: int
    pipeline_id: int
    pipeline_name: str | None = None
    status: ExecutionStatus
    executed_by: str | None = None
    step_executions: list[StepExecutionResponse] = Field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
