"""Execution status overlay.

Annotates the editable graph with the status of one pipeline execution,
matching step executions to steps by name. Read-only: the graph is never
modified.
"""

from dataclasses import dataclass, field

from pipeline_editor.models.base import StepExecutionStatus
from pipeline_editor.models.editor import PipelineGraph
from pipeline_editor.models.pipeline import ExecutionDetailResponse, StepExecutionResponse
from pipeline_editor.types import ClientId, Edge

from .cycle import dependency_edges


@dataclass
class ExecutionOverlay:
    """Per-step execution records and the edges to animate.

    Attributes:
        steps: Step execution keyed by client id (steps that did not run are absent)
        animated_edges: Edges whose source step is currently running
    """

    steps: dict[ClientId, StepExecutionResponse] = field(default_factory=dict)
    animated_edges: set[Edge] = field(default_factory=set)

    def node_status(self, client_id: ClientId) -> StepExecutionStatus | None:
        execution = self.steps.get(client_id)
        return execution.status if execution else None


def build_execution_overlay(
    state: PipelineGraph, execution: ExecutionDetailResponse | None
) -> ExecutionOverlay:
    """Match an execution's step records to the steps of the graph."""
    if execution is None:
        return ExecutionOverlay()

    by_name = {record.step_name: record for record in execution.step_executions}
    steps = {
        step.client_id: by_name[step.name]
        for step in state.steps
        if step.name in by_name
    }
    running = {
        client_id
        for client_id, record in steps.items()
        if record.status == StepExecutionStatus.RUNNING
    }
    animated = {edge for edge in dependency_edges(state.steps) if edge[0] in running}
    return ExecutionOverlay(steps=steps, animated_edges=animated)
