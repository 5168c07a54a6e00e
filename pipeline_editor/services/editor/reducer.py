"""
Graph edit reducer.

``reduce(state, action)`` is the single mutation surface of a ``PipelineGraph``.
It is synchronous and total: actions referring to unknown steps, duplicate
edges and edges that would close a cycle leave the state untouched.

Invariants kept by every transition:
  1. a step never depends on itself;
  2. the ``depends_on`` relation is acyclic;
  3. client ids are unique;
  4. no ``depends_on`` entry names a removed step.
"""

from __future__ import annotations

from pipeline_editor.models.base import LoadStrategy
from pipeline_editor.models.editor import PipelineGraph, Position, Step
from pipeline_editor.models.pipeline import PipelineDetailResponse
from pipeline_editor.settings import Settings, settings
from pipeline_editor.types import ClientId, Edge
from pipeline_editor.utils.logger import logger

from .actions import (
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
)
from .cycle import dependency_edges, would_create_cycle
from .layout import LayoutConfig, compute_layout


def create_default_step(position: Position) -> Step:
    """Create an empty SQL step with a fresh client id."""
    return Step(position=position)


def apply_auto_layout(state: PipelineGraph, config: Settings | None = None) -> PipelineGraph:
    """Recompute every step position. Does not touch ``is_dirty``."""
    if not state.steps:
        return state

    positions = compute_layout(
        [step.client_id for step in state.steps],
        dependency_edges(state.steps),
        LayoutConfig.from_settings(config),
    )
    steps = tuple(
        step.model_copy(update={"position": positions[step.client_id]}) for step in state.steps
    )
    return state.model_copy(update={"steps": steps})


def hydrate(detail: PipelineDetailResponse, config: Settings | None = None) -> PipelineGraph:
    """Build a clean graph from a persisted pipeline.

    Every step gets a fresh client id; ``dependsOnStepNames`` are resolved
    against the current step names. Unknown names, self references and edges
    that would close a cycle are dropped. Server positions are kept only when
    every step has one, otherwise the graph is auto-laid-out.
    """
    id_by_name: dict[str, ClientId] = {}
    drafts: list[Step] = []
    for persisted in detail.steps:
        step = Step(
            name=persisted.name,
            description=persisted.description or "",
            script_type=persisted.script_type,
            script_content=persisted.script_content or "",
            output_dataset_id=persisted.output_dataset_id,
            input_dataset_ids=tuple(persisted.input_dataset_ids),
            position=persisted.position or Position(),
            load_strategy=persisted.load_strategy or LoadStrategy.REPLACE,
            api_config=persisted.api_config,
            api_connection_id=persisted.api_connection_id,
        )
        if persisted.name in id_by_name:
            logger.warning(f"Pipeline {detail.id} has duplicate step name '{persisted.name}'")
        else:
            id_by_name[persisted.name] = step.client_id
        drafts.append(step)

    edges: list[Edge] = []
    steps: list[Step] = []
    for step, persisted in zip(drafts, detail.steps, strict=True):
        depends_on: list[ClientId] = []
        for dep_name in persisted.depends_on_step_names:
            dep_id = id_by_name.get(dep_name)
            if dep_id is None:
                logger.warning(
                    f"Step '{persisted.name}' depends on unknown step '{dep_name}', dropping edge"
                )
                continue
            if dep_id in depends_on:
                continue
            if would_create_cycle(edges, dep_id, step.client_id):
                logger.warning(
                    f"Dropping edge '{dep_name}' -> '{persisted.name}': it would create a cycle"
                )
                continue
            edges.append((dep_id, step.client_id))
            depends_on.append(dep_id)
        steps.append(step.model_copy(update={"depends_on": tuple(depends_on)}))

    state = PipelineGraph(
        persisted_id=detail.id,
        name=detail.name,
        description=detail.description or "",
        is_active=detail.is_active,
        steps=tuple(steps),
    )
    if all(persisted.position is not None for persisted in detail.steps):
        return state
    return apply_auto_layout(state, config)


def _replace_step(state: PipelineGraph, client_id: ClientId, **updates: object) -> tuple[Step, ...]:
    return tuple(
        step.model_copy(update=updates) if step.client_id == client_id else step
        for step in state.steps
    )


def _dirty(state: PipelineGraph, **updates: object) -> PipelineGraph:
    return state.model_copy(update={**updates, "is_dirty": True})


def _append_step(state: PipelineGraph, step: Step) -> PipelineGraph:
    return _dirty(
        state,
        steps=(*state.steps, step),
        selected_step_id=step.client_id,
        validation_errors=(),
    )


def _remove_step(state: PipelineGraph, action: RemoveStep) -> PipelineGraph:
    removed = state.get_step(action.step_id)
    if removed is None:
        return state

    # Explicit O(steps) pass: strip the removed id from every dependency set
    steps: list[Step] = []
    for step in state.steps:
        if step.client_id == action.step_id:
            continue
        if action.step_id not in step.depends_on:
            steps.append(step)
            continue
        depends_on = [dep for dep in step.depends_on if dep != action.step_id]
        if action.reconnect:
            depends_on.extend(dep for dep in removed.depends_on if dep not in depends_on)
        steps.append(step.model_copy(update={"depends_on": tuple(depends_on)}))

    selected = None if state.selected_step_id == action.step_id else state.selected_step_id
    return _dirty(state, steps=tuple(steps), selected_step_id=selected, validation_errors=())


def _insert_between(
    state: PipelineGraph, action: InsertStepBetween, config: Settings | None
) -> PipelineGraph:
    source = state.get_step(action.source_id)
    target = state.get_step(action.target_id)
    if source is None or target is None or action.source_id not in target.depends_on:
        return state

    new_step = create_default_step(
        Position(
            x=(source.position.x + target.position.x) / 2,
            y=(source.position.y + target.position.y) / 2,
        )
    ).model_copy(update={"depends_on": (action.source_id,)})
    rewired = tuple(
        new_step.client_id if dep == action.source_id else dep for dep in target.depends_on
    )
    steps = _replace_step(state, action.target_id, depends_on=rewired)
    spliced = _dirty(
        state,
        steps=(*steps, new_step),
        selected_step_id=new_step.client_id,
        validation_errors=(),
    )
    return apply_auto_layout(spliced, config)


def _add_edge(state: PipelineGraph, action: AddEdge) -> PipelineGraph:
    target = state.get_step(action.target_id)
    if target is None or state.get_step(action.source_id) is None:
        return state
    if action.source_id in target.depends_on:
        return state
    if would_create_cycle(dependency_edges(state.steps), action.source_id, action.target_id):
        logger.debug(
            f"Rejected edge {action.source_id} -> {action.target_id}: would create a cycle"
        )
        return state

    steps = _replace_step(
        state, action.target_id, depends_on=(*target.depends_on, action.source_id)
    )
    return _dirty(state, steps=steps)


def reduce(
    state: PipelineGraph, action: EditorAction, config: Settings | None = None
) -> PipelineGraph:
    """Apply one editor action.

    Args:
        state: Current graph; never mutated.
        action: The action to apply.
        config: Settings providing layout constants (defaults to global settings).

    Returns:
        The next graph, or ``state`` itself when the action is a no-op.
    """
    config = config or settings

    match action:
        case SetMeta():
            meta = action.model_dump(
                include={"name", "description", "is_active"}, exclude_none=True
            )
            return _dirty(state, **meta, validation_errors=())

        case AddStep(position=position):
            return _append_step(state, create_default_step(position))

        case AddStepAfter(source_id=source_id):
            source = state.get_step(source_id)
            if source is None:
                return state
            position = Position(x=source.position.x + config.add_after_offset, y=source.position.y)
            new_step = create_default_step(position).model_copy(update={"depends_on": (source_id,)})
            return _append_step(state, new_step)

        case InsertStepBetween():
            return _insert_between(state, action, config)

        case RemoveStep():
            return _remove_step(state, action)

        case UpdateStep(step_id=step_id, changes=changes):
            if state.get_step(step_id) is None:
                return state
            errors = tuple(e for e in state.validation_errors if e.step_id != step_id)
            steps = _replace_step(state, step_id, **changes.as_update())
            return _dirty(state, steps=steps, validation_errors=errors)

        case UpdateNodePosition(step_id=step_id, position=position):
            if state.get_step(step_id) is None:
                return state
            return _dirty(state, steps=_replace_step(state, step_id, position=position))

        case AddEdge():
            return _add_edge(state, action)

        case RemoveEdge(source_id=source_id, target_id=target_id):
            target = state.get_step(target_id)
            if target is None or source_id not in target.depends_on:
                return state
            depends_on = tuple(dep for dep in target.depends_on if dep != source_id)
            return _dirty(state, steps=_replace_step(state, target_id, depends_on=depends_on))

        case SelectStep(step_id=step_id):
            if step_id is not None and state.get_step(step_id) is None:
                return state
            return state.model_copy(update={"selected_step_id": step_id})

        case AutoLayout():
            if not state.steps:
                return state
            return _dirty(apply_auto_layout(state, config))

        case SetValidationErrors(errors=errors):
            return state.model_copy(update={"validation_errors": tuple(errors)})

        case MarkSaved(persisted_id=persisted_id, keep_dirty=keep_dirty):
            if persisted_id is None:
                persisted_id = state.persisted_id
            if keep_dirty:
                return state.model_copy(update={"persisted_id": persisted_id})
            return state.model_copy(
                update={"is_dirty": False, "validation_errors": (), "persisted_id": persisted_id}
            )

        case LoadFromApi(detail=detail):
            return hydrate(detail, config)

    raise TypeError(f"Unknown editor action: {action!r}")
