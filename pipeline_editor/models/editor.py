"""
Editor state models.

A ``PipelineGraph`` is the root aggregate of one editing session. Steps are
addressed by a session-local ``client_id``; dependency edges are stored on the
dependent step as the set of its predecessors' client ids.

All models are frozen. The reducer produces new instances with
``model_copy(update=...)`` and never mutates its input.
"""

from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..types import ClientId
from .base import LoadStrategy, ScriptType


def new_client_id() -> ClientId:
    """Mint a fresh session-local step identifier."""
    return uuid4().hex


def _dedupe[T](values: tuple[T, ...]) -> tuple[T, ...]:
    return tuple(dict.fromkeys(values))


# Step fields that an explicit None clears; for the rest None means "leave alone"
_NULLABLE_STEP_FIELDS = frozenset({"output_dataset_id", "api_config", "api_connection_id"})


class Position(BaseModel):
    """Top-left corner of a node on the canvas."""

    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0


class Step(BaseModel):
    """One executable step of the pipeline graph.

    Args:
        client_id: Session-local identity, used only to wire edges.
        name: Durable identity; must be unique (trimmed) at save time.
        depends_on: Client ids of the predecessor steps (set semantics).
        position: Display-only canvas position.
    """

    model_config = ConfigDict(frozen=True)

    client_id: ClientId = Field(default_factory=new_client_id)
    name: str = ""
    description: str = ""
    script_type: ScriptType = ScriptType.SQL
    script_content: str = ""
    output_dataset_id: int | None = None
    input_dataset_ids: tuple[int, ...] = ()
    depends_on: tuple[ClientId, ...] = ()
    position: Position = Field(default_factory=Position)
    load_strategy: LoadStrategy = LoadStrategy.REPLACE
    api_config: dict[str, Any] | None = None
    api_connection_id: int | None = None

    @field_validator("input_dataset_ids", "depends_on", mode="after")
    @classmethod
    def _unique(cls, value: tuple[Any, ...]) -> tuple[Any, ...]:
        return _dedupe(value)


class StepChanges(BaseModel):
    """Partial update of a step's editable content.

    Only fields set explicitly are merged. Identity (``client_id``), edges
    (``depends_on``) and ``position`` have their own actions and cannot be
    changed here.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str | None = None
    description: str | None = None
    script_type: ScriptType | None = None
    script_content: str | None = None
    output_dataset_id: int | None = None
    input_dataset_ids: tuple[int, ...] | None = None
    load_strategy: LoadStrategy | None = None
    api_config: dict[str, Any] | None = None
    api_connection_id: int | None = None

    @field_validator("input_dataset_ids", mode="after")
    @classmethod
    def _unique(cls, value: tuple[int, ...] | None) -> tuple[int, ...] | None:
        return None if value is None else _dedupe(value)

    def as_update(self) -> dict[str, Any]:
        """Fields to merge into a ``Step`` with ``model_copy(update=...)``."""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key in _NULLABLE_STEP_FIELDS
        }


class ValidationError(BaseModel):
    """Field-level diagnostic attached to one step."""

    model_config = ConfigDict(frozen=True)

    step_id: ClientId
    field: str
    message: str


class PipelineGraph(BaseModel):
    """Editable pipeline: metadata, steps, selection and transient flags."""

    model_config = ConfigDict(frozen=True)

    persisted_id: int | None = None
    name: str = ""
    description: str = ""
    is_active: bool = True
    steps: tuple[Step, ...] = ()
    selected_step_id: ClientId | None = None
    validation_errors: tuple[ValidationError, ...] = ()
    is_dirty: bool = False

    def get_step(self, client_id: ClientId) -> Step | None:
        """Look up a step by client id."""
        for step in self.steps:
            if step.client_id == client_id:
                return step
        return None

    def errors_for(self, client_id: ClientId) -> list[ValidationError]:
        """Validation errors attached to one step."""
        return [e for e in self.validation_errors if e.step_id == client_id]
