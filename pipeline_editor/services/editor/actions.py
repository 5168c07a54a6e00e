"""Editor actions: the closed set of messages accepted by the reducer.

Each action is a frozen pydantic model tagged with an ``ActionType``, so raw
dict payloads (e.g. from a UI bridge) can be parsed with ``parse_action``.
"""

import enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from pipeline_editor.models.editor import Position, StepChanges, ValidationError
from pipeline_editor.models.pipeline import PipelineDetailResponse
from pipeline_editor.types import ClientId


class ActionType(str, enum.Enum):
    """Tag of each editor action."""

    SET_META = "SET_META"
    ADD_STEP = "ADD_STEP"
    ADD_STEP_AFTER = "ADD_STEP_AFTER"
    INSERT_STEP_BETWEEN = "INSERT_STEP_BETWEEN"
    REMOVE_STEP = "REMOVE_STEP"
    UPDATE_STEP = "UPDATE_STEP"
    UPDATE_NODE_POSITION = "UPDATE_NODE_POSITION"
    ADD_EDGE = "ADD_EDGE"
    REMOVE_EDGE = "REMOVE_EDGE"
    SELECT_STEP = "SELECT_STEP"
    AUTO_LAYOUT = "AUTO_LAYOUT"
    SET_VALIDATION_ERRORS = "SET_VALIDATION_ERRORS"
    MARK_SAVED = "MARK_SAVED"
    LOAD_FROM_API = "LOAD_FROM_API"


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SetMeta(_Action):
    """Merge pipeline metadata; unset fields are left alone."""

    type: Literal[ActionType.SET_META] = ActionType.SET_META
    name: str | None = None
    description: str | None = None
    is_active: bool | None = None


class AddStep(_Action):
    type: Literal[ActionType.ADD_STEP] = ActionType.ADD_STEP
    position: Position = Field(default_factory=Position)


class AddStepAfter(_Action):
    """Append a new step that depends on ``source_id``."""

    type: Literal[ActionType.ADD_STEP_AFTER] = ActionType.ADD_STEP_AFTER
    source_id: ClientId


class InsertStepBetween(_Action):
    """Splice a new step into the existing edge ``source_id -> target_id``."""

    type: Literal[ActionType.INSERT_STEP_BETWEEN] = ActionType.INSERT_STEP_BETWEEN
    source_id: ClientId
    target_id: ClientId


class RemoveStep(_Action):
    """Delete a step and every edge touching it.

    With ``reconnect`` the removed step's successors inherit its predecessors.
    """

    type: Literal[ActionType.REMOVE_STEP] = ActionType.REMOVE_STEP
    step_id: ClientId
    reconnect: bool = False


class UpdateStep(_Action):
    type: Literal[ActionType.UPDATE_STEP] = ActionType.UPDATE_STEP
    step_id: ClientId
    changes: StepChanges


class UpdateNodePosition(_Action):
    type: Literal[ActionType.UPDATE_NODE_POSITION] = ActionType.UPDATE_NODE_POSITION
    step_id: ClientId
    position: Position


class AddEdge(_Action):
    """Make ``target_id`` depend on ``source_id``."""

    type: Literal[ActionType.ADD_EDGE] = ActionType.ADD_EDGE
    source_id: ClientId
    target_id: ClientId


class RemoveEdge(_Action):
    type: Literal[ActionType.REMOVE_EDGE] = ActionType.REMOVE_EDGE
    source_id: ClientId
    target_id: ClientId


class SelectStep(_Action):
    type: Literal[ActionType.SELECT_STEP] = ActionType.SELECT_STEP
    step_id: ClientId | None = None


class AutoLayout(_Action):
    type: Literal[ActionType.AUTO_LAYOUT] = ActionType.AUTO_LAYOUT


class SetValidationErrors(_Action):
    type: Literal[ActionType.SET_VALIDATION_ERRORS] = ActionType.SET_VALIDATION_ERRORS
    errors: tuple[ValidationError, ...] = ()


class MarkSaved(_Action):
    """Record a successful save.

    ``keep_dirty`` records the id only, for saves that finished after the
    graph was edited again.
    """

    type: Literal[ActionType.MARK_SAVED] = ActionType.MARK_SAVED
    persisted_id: int | None = None
    keep_dirty: bool = False


class LoadFromApi(_Action):
    """Replace the whole graph with a hydrated backend record."""

    type: Literal[ActionType.LOAD_FROM_API] = ActionType.LOAD_FROM_API
    detail: PipelineDetailResponse


type EditorAction = Annotated[
    SetMeta
    | AddStep
    | AddStepAfter
    | InsertStepBetween
    | RemoveStep
    | UpdateStep
    | UpdateNodePosition
    | AddEdge
    | RemoveEdge
    | SelectStep
    | AutoLayout
    | SetValidationErrors
    | MarkSaved
    | LoadFromApi,
    Field(discriminator="type"),
]

_action_adapter: TypeAdapter[EditorAction] = TypeAdapter(EditorAction)


def parse_action(data: object) -> EditorAction:
    """Parse a raw ``{"type": ..., ...}`` payload into an action model.

    Raises:
        pydantic.ValidationError: If the payload matches no action.
    """
    return _action_adapter.validate_python(data)
