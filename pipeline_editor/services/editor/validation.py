"""
Pre-save validation of the editor state.

Runs only on an explicit save attempt. Graph-level problems that make the
pipeline unsavable as a whole (missing name, no steps) are reported as a
single hard-stop message; everything else becomes field-level
``ValidationError`` records keyed to a step.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from pydantic import PositiveInt, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from pipeline_editor.models.base import CamelModel, LoadStrategy, ScriptType
from pipeline_editor.models.editor import PipelineGraph, Step, ValidationError
from pipeline_editor.types import JSONDict

MAX_NAME_LENGTH = 100


@dataclass
class ValidationOutcome:
    """Result of a validation run.

    Attributes:
        message: Hard-stop message for the whole pipeline, if any
        errors: Field-level errors (empty when a hard stop occurred)
    """

    message: str | None = None
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.message is None and not self.errors


class StepSchema(CamelModel):
    """Shape rules for one step, checked field by field."""

    name: str
    description: str | None = None
    script_type: ScriptType
    script_content: str | None = None
    output_dataset_id: PositiveInt | None = None
    input_dataset_ids: list[PositiveInt] = []
    load_strategy: LoadStrategy = LoadStrategy.REPLACE
    api_config: dict[str, Any] | None = None
    api_connection_id: PositiveInt | None = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise PydanticCustomError("step_name_required", "Step name is required")
        if len(value) > MAX_NAME_LENGTH:
            raise PydanticCustomError(
                "step_name_too_long",
                "Step name must be at most {max_length} characters",
                {"max_length": MAX_NAME_LENGTH},
            )
        return value


def _schema_input(step: Step) -> JSONDict:
    return {
        "name": step.name,
        "description": step.description,
        "scriptType": step.script_type.value,
        "scriptContent": step.script_content,
        "outputDatasetId": step.output_dataset_id,
        "inputDatasetIds": list(step.input_dataset_ids),
        "loadStrategy": step.load_strategy.value,
        "apiConfig": step.api_config,
        "apiConnectionId": step.api_connection_id,
    }


def validate_step(step: Step) -> list[ValidationError]:
    """Check one step's fields; every violation becomes one error."""
    errors: list[ValidationError] = []

    try:
        StepSchema.model_validate(_schema_input(step))
    except PydanticValidationError as e:
        for issue in e.errors():
            errors.append(
                ValidationError(
                    step_id=step.client_id,
                    field=".".join(str(part) for part in issue["loc"]),
                    message=issue["msg"],
                )
            )

    if step.script_type == ScriptType.API_CALL:
        if not step.api_config:
            errors.append(
                ValidationError(
                    step_id=step.client_id,
                    field="apiConfig",
                    message="API call configuration is required",
                )
            )
    elif not step.script_content.strip():
        errors.append(
            ValidationError(
                step_id=step.client_id,
                field="scriptContent",
                message="Script content is required",
            )
        )

    return errors


def find_duplicate_names(steps: tuple[Step, ...]) -> list[ValidationError]:
    """Flag every step whose trimmed name is shared with another step."""
    by_name: dict[str, list[Step]] = defaultdict(list)
    for step in steps:
        trimmed = step.name.strip()
        if trimmed:
            by_name[trimmed].append(step)

    return [
        ValidationError(
            step_id=step.client_id,
            field="name",
            message=f'Step name "{name}" is used by more than one step',
        )
        for name, group in by_name.items()
        if len(group) > 1
        for step in group
    ]


def validate_pipeline(state: PipelineGraph) -> ValidationOutcome:
    """Validate the whole editor state before saving.

    Args:
        state: Graph to validate

    Returns:
        ValidationOutcome; a hard stop carries no field errors
    """
    name = state.name.strip()
    if not name:
        return ValidationOutcome(message="Pipeline name is required")
    if len(name) > MAX_NAME_LENGTH:
        return ValidationOutcome(
            message=f"Pipeline name must be at most {MAX_NAME_LENGTH} characters"
        )
    if not state.steps:
        return ValidationOutcome(message="At least one step is required")

    errors: list[ValidationError] = []
    for step in state.steps:
        errors.extend(validate_step(step))
    errors.extend(find_duplicate_names(state.steps))
    return ValidationOutcome(errors=errors)
