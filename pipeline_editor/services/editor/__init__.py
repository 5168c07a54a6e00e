"""
Pipeline graph editor state engine.

Example:
    from pipeline_editor.client import PipelineAPIClient
    from pipeline_editor.models import Position, StepChanges
    from pipeline_editor.services.editor import (
        AddStep, EditorSession, PipelineSaveService, SetMeta, UpdateStep,
    )

    session = EditorSession()
    session.dispatch(SetMeta(name="daily_load"))
    session.dispatch(AddStep(position=Position(x=0, y=0)))
    extract_id = session.state.selected_step_id
    session.dispatch(UpdateStep(step_id=extract_id, changes=StepChanges(name="extract")))

    async with PipelineAPIClient() as client:
        result = await PipelineSaveService(client).save(session)
"""

from .actions import (
    ActionType,
    AddEdge,
    AddStep,
    AddStepAfter,
    AutoLayout,
    EditorAction,
    InsertStepBetween,
    LoadFromApi,
    MarkSaved,
    RemoveEdge,
    RemoveStep,
    SelectStep,
    SetMeta,
    SetValidationErrors,
    UpdateNodePosition,
    UpdateStep,
    parse_action,
)
from .cycle import dependency_edges, dependency_graph, would_create_cycle
from .layout import LayoutConfig, compute_layout
from .overlay import ExecutionOverlay, build_execution_overlay
from .reducer import apply_auto_layout, create_default_step, hydrate, reduce
from .save import (
    PipelineSaveService,
    SaveResult,
    SaveStatus,
    build_create_request,
    build_step_requests,
    build_update_request,
)
from .session import EditorSession
from .validation import ValidationOutcome, validate_pipeline, validate_step

__all__ = [
    "ActionType",
    "AddEdge",
    "AddStep",
    "AddStepAfter",
    "AutoLayout",
    "EditorAction",
    "EditorSession",
    "ExecutionOverlay",
    "InsertStepBetween",
    "LayoutConfig",
    "LoadFromApi",
    "MarkSaved",
    "PipelineSaveService",
    "RemoveEdge",
    "RemoveStep",
    "SaveResult",
    "SaveStatus",
    "SelectStep",
    "SetMeta",
    "SetValidationErrors",
    "UpdateNodePosition",
    "UpdateStep",
    "ValidationOutcome",
    "apply_auto_layout",
    "build_create_request",
    "build_execution_overlay",
    "build_step_requests",
    "build_update_request",
    "compute_layout",
    "create_default_step",
    "dependency_edges",
    "dependency_graph",
    "hydrate",
    "parse_action",
    "reduce",
    "validate_pipeline",
    "validate_step",
    "would_create_cycle",
]
