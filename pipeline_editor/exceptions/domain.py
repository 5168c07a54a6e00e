"""
Domain exceptions for the editor layer.

Validation problems are reported as data (``ValidationError`` records), not
exceptions. These classes cover misuse that must fail fast.
"""


class PipelineEditorError(Exception):
    """Base exception for all pipeline editor errors."""

    pass


class EditorStateError(PipelineEditorError):
    """Raised when an operation is invoked on a session in an unusable state."""

    pass


class InvalidPipelineIdError(EditorStateError):
    """Raised when a save is attempted with a malformed persisted pipeline id."""

    def __init__(self, pipeline_id: object) -> None:
        super().__init__(f"Invalid persisted pipeline id: {pipeline_id!r}")


class SaveInProgressError(EditorStateError):
    """Raised when a save is started while another save is still in flight."""

    def __init__(self) -> None:
        super().__init__("A save is already in progress for this editing session")


class ReadOnlySessionError(EditorStateError):
    """Raised when a save is requested on a read-only editing session."""

    def __init__(self) -> None:
        super().__init__("Editing session is read-only")


class PipelineFileError(PipelineEditorError):
    """Raised when a pipeline definition file cannot be read or parsed."""

    pass
