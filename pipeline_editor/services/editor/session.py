"""
Editing session: the calling layer around the reducer.

One session owns exactly one ``PipelineGraph``. It gates read-only mode,
remembers the last loaded backend record so local edits can be discarded,
and tracks whether a save is in flight.
"""

from pipeline_editor.exceptions.domain import SaveInProgressError
from pipeline_editor.models.editor import PipelineGraph, Step
from pipeline_editor.models.pipeline import PipelineDetailResponse
from pipeline_editor.settings import Settings
from pipeline_editor.types import ClientId, Edge
from pipeline_editor.utils.logger import logger

from .actions import EditorAction, LoadFromApi, SelectStep
from .cycle import dependency_edges
from .reducer import reduce


class EditorSession:
    """Single-writer holder of the editor state.

    Args:
        state: Initial graph (defaults to an empty new pipeline)
        read_only: Refuse every action except step selection
        config: Settings providing layout constants

    Example:
        session = EditorSession()
        session.dispatch(AddStep(position=Position(x=0, y=0)))
        session.dispatch(UpdateStep(step_id=session.state.selected_step_id, changes=...))
    """

    def __init__(
        self,
        state: PipelineGraph | None = None,
        read_only: bool = False,
        config: Settings | None = None,
    ) -> None:
        self._state = state or PipelineGraph()
        self.read_only = read_only
        self.config = config
        self._loaded: PipelineDetailResponse | None = None
        self._saving = False

    @property
    def state(self) -> PipelineGraph:
        return self._state

    @property
    def is_new(self) -> bool:
        """True until the pipeline has a backend record."""
        return self._state.persisted_id is None

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def edges(self) -> list[Edge]:
        return dependency_edges(self._state.steps)

    @property
    def selected_step(self) -> Step | None:
        if self._state.selected_step_id is None:
            return None
        return self._state.get_step(self._state.selected_step_id)

    def step(self, client_id: ClientId) -> Step | None:
        return self._state.get_step(client_id)

    def dispatch(self, action: EditorAction) -> bool:
        """Apply an action to the session state.

        Args:
            action: Editor action

        Returns:
            False if the action was refused because the session is read-only
        """
        if self.read_only and not isinstance(action, SelectStep):
            logger.debug(f"Read-only session refused {action.type.value}")
            return False

        self._state = reduce(self._state, action, self.config)
        return True

    def load(self, detail: PipelineDetailResponse) -> None:
        """Hydrate the session from a backend record and remember it for ``cancel_edit``."""
        self._loaded = detail
        self._state = reduce(self._state, LoadFromApi(detail=detail), self.config)
        logger.info(f"Loaded pipeline '{detail.name}' (id={detail.id}, {len(detail.steps)} steps)")

    def cancel_edit(self) -> bool:
        """Discard local edits by reloading the last loaded record.

        Returns:
            False if nothing was ever loaded (new pipeline)
        """
        if self._loaded is None:
            return False
        self.load(self._loaded)
        return True

    def begin_save(self) -> PipelineGraph:
        """Mark a save as in flight and return the state being saved.

        Raises:
            SaveInProgressError: If another save has not finished yet
        """
        if self._saving:
            raise SaveInProgressError()
        self._saving = True
        return self._state

    def end_save(self) -> None:
        self._saving = False
