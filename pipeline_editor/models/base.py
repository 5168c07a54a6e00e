"""
Base models for the pipeline editor.

This module provides the base pydantic classes and the enumerations shared by
the editor state and the backend wire models.
"""

import enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model for backend payloads.

    Fields are snake_case in Python and camelCase on the wire; both spellings
    are accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScriptType(str, enum.Enum):
    """Kind of script a pipeline step executes."""

    SQL = "SQL"
    PYTHON = "PYTHON"
    API_CALL = "API_CALL"


class LoadStrategy(str, enum.Enum):
    """How a step writes into its output dataset."""

    REPLACE = "REPLACE"
    APPEND = "APPEND"


class ExecutionStatus(str, enum.Enum):
    """Status of a whole pipeline execution."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class StepExecutionStatus(str, enum.Enum):
    """Status of a single step within an execution."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
