"""
Save / reconciliation of an editing session with the backend.

This is the only place where session-local client ids are translated into
the backend's name-keyed dependency representation.
"""

import enum
from dataclasses import dataclass, field

from pipeline_editor.client import PipelineAPIClient, PipelineAPIError
from pipeline_editor.exceptions.domain import InvalidPipelineIdError, ReadOnlySessionError
from pipeline_editor.models.editor import PipelineGraph, Step, ValidationError
from pipeline_editor.models.pipeline import (
    CreatePipelineRequest,
    PipelineStepRequest,
    UpdatePipelineRequest,
)
from pipeline_editor.utils.logger import logger

from .actions import MarkSaved, SetValidationErrors
from .session import EditorSession
from .validation import validate_pipeline


class SaveStatus(str, enum.Enum):
    """Outcome of a save attempt."""

    CREATED = "created"
    UPDATED = "updated"
    INVALID = "invalid"
    FAILED = "failed"


@dataclass
class SaveResult:
    """Result of ``PipelineSaveService.save``.

    Attributes:
        status: What happened
        message: User-facing summary
        pipeline_id: Persisted id after a successful save
        errors: Field errors that blocked the save
    """

    status: SaveStatus
    message: str
    pipeline_id: int | None = None
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (SaveStatus.CREATED, SaveStatus.UPDATED)


def build_step_requests(steps: tuple[Step, ...]) -> list[PipelineStepRequest]:
    """Translate editor steps into backend step requests.

    ``depends_on`` client ids are resolved to trimmed step names; ids that no
    longer resolve are dropped.
    """
    name_by_id = {step.client_id: step.name.strip() for step in steps}
    return [
        PipelineStepRequest(
            name=step.name.strip(),
            description=step.description or None,
            script_type=step.script_type,
            script_content=step.script_content,
            output_dataset_id=step.output_dataset_id,
            input_dataset_ids=list(step.input_dataset_ids),
            depends_on_step_names=[
                name_by_id[dep] for dep in step.depends_on if name_by_id.get(dep)
            ],
            load_strategy=step.load_strategy,
            api_config=step.api_config,
            api_connection_id=step.api_connection_id,
            position=step.position,
        )
        for step in steps
    ]


def build_create_request(state: PipelineGraph) -> CreatePipelineRequest:
    return CreatePipelineRequest(
        name=state.name.strip(),
        description=state.description or None,
        steps=build_step_requests(state.steps),
    )


def build_update_request(state: PipelineGraph) -> UpdatePipelineRequest:
    return UpdatePipelineRequest(
        name=state.name.strip(),
        description=state.description or None,
        is_active=state.is_active,
        steps=build_step_requests(state.steps),
    )


def _check_persisted_id(pipeline_id: object) -> None:
    if pipeline_id is None:
        return
    if isinstance(pipeline_id, bool) or not isinstance(pipeline_id, int) or pipeline_id <= 0:
        raise InvalidPipelineIdError(pipeline_id)


class PipelineSaveService:
    """Validates an editing session and persists it through the API client.

    Args:
        client: Backend API client

    Example:
        service = PipelineSaveService(client)
        result = await service.save(session)
        if not result.ok:
            show_error(result.message)
    """

    def __init__(self, client: PipelineAPIClient):
        self.client = client

    async def save(self, session: EditorSession) -> SaveResult:
        """Validate and persist the session state.

        On validation failure the errors are dispatched into the session and
        nothing is sent. On a network or server failure the session state is
        left untouched so the save can be retried.

        Args:
            session: Editing session to save

        Returns:
            SaveResult describing the outcome

        Raises:
            InvalidPipelineIdError: If the persisted id is malformed
            ReadOnlySessionError: If the session is read-only
            SaveInProgressError: If a save of this session is already running
        """
        if session.read_only:
            raise ReadOnlySessionError()
        _check_persisted_id(session.state.persisted_id)
        state = session.begin_save()
        try:
            outcome = validate_pipeline(state)
            if outcome.message is not None:
                logger.info(f"Save blocked: {outcome.message}")
                return SaveResult(status=SaveStatus.INVALID, message=outcome.message)
            if outcome.errors:
                session.dispatch(SetValidationErrors(errors=tuple(outcome.errors)))
                logger.info(f"Save blocked by {len(outcome.errors)} validation error(s)")
                return SaveResult(
                    status=SaveStatus.INVALID,
                    message="Fix the highlighted input errors",
                    errors=outcome.errors,
                )

            try:
                if state.persisted_id is None:
                    created = await self.client.create_pipeline(build_create_request(state))
                    self._mark_saved(session, state, created.id)
                    return SaveResult(
                        status=SaveStatus.CREATED,
                        message="Pipeline created",
                        pipeline_id=created.id,
                    )

                await self.client.update_pipeline(state.persisted_id, build_update_request(state))
                self._mark_saved(session, state, state.persisted_id)
                return SaveResult(
                    status=SaveStatus.UPDATED,
                    message="Pipeline saved",
                    pipeline_id=state.persisted_id,
                )
            except PipelineAPIError as e:
                logger.error(f"Failed to save pipeline '{state.name}': {e.message}")
                return SaveResult(
                    status=SaveStatus.FAILED, message=f"Failed to save pipeline: {e.message}"
                )
        finally:
            session.end_save()

    @staticmethod
    def _mark_saved(session: EditorSession, saved: PipelineGraph, pipeline_id: int) -> None:
        # Edits dispatched while the request was in flight were not sent;
        # selection and validation errors are not part of the saved record
        current = session.state.model_copy(
            update={
                "selected_step_id": saved.selected_step_id,
                "validation_errors": saved.validation_errors,
            }
        )
        edited = current != saved
        if edited:
            logger.info(f"Pipeline {pipeline_id} changed during save; keeping it dirty")
        session.dispatch(MarkSaved(persisted_id=pipeline_id, keep_dirty=edited))
