"""Tests for the save service: validation gate, create, update and failure handling."""

import asyncio

import httpx
import pytest
from conftest import BASE_URL, make_graph, make_step

from pipeline_editor.client import PipelineAPIClient

from pipeline_editor.exceptions.domain import (
    InvalidPipelineIdError,
    ReadOnlySessionError,
    SaveInProgressError,
)
from pipeline_editor.models import Position, StepChanges
from pipeline_editor.services.editor import (
    AddStep,
    AddStepAfter,
    EditorSession,
    PipelineSaveService,
    SaveStatus,
    SelectStep,
    SetMeta,
    UpdateStep,
    build_step_requests,
)


# ─── Request building ───────────────────────────────────────────────────────


class TestBuildStepRequests:
    """Client ids are translated to names only here."""

    def test_dependencies_become_trimmed_names(self):
        a = make_step(" extract ")
        b = make_step("load", a)

        requests = build_step_requests((a, b))

        assert requests[0].name == "extract"
        assert requests[1].depends_on_step_names == ["extract"]

    def test_unresolvable_dependencies_are_dropped(self):
        a = make_step("a")
        b = make_step("b", a).model_copy(update={"depends_on": (a.client_id, "gone")})
        assert build_step_requests((a, b))[1].depends_on_step_names == ["a"]

    def test_wire_shape(self):
        step = make_step("extract", position=Position(x=10, y=20), input_dataset_ids=(2,))

        payload = build_step_requests((step,))[0].model_dump(
            by_alias=True, mode="json", exclude_none=True
        )

        assert payload == {
            "name": "extract",
            "scriptType": "SQL",
            "scriptContent": "SELECT * FROM extract",
            "outputDatasetId": 1,
            "inputDatasetIds": [2],
            "dependsOnStepNames": [],
            "loadStrategy": "REPLACE",
            "position": {"x": 10.0, "y": 20.0},
        }


# ─── Saving ─────────────────────────────────────────────────────────────────


def build_new_session(test_settings) -> EditorSession:
    """Editor flow: name the pipeline, add x, then y after x."""
    session = EditorSession(config=test_settings)
    session.dispatch(SetMeta(name="P"))
    session.dispatch(AddStep(position=Position(x=0, y=0)))
    x_id = session.state.selected_step_id
    session.dispatch(
        UpdateStep(
            step_id=x_id,
            changes=StepChanges(name="x", script_content="SELECT 1", output_dataset_id=1),
        )
    )
    session.dispatch(AddStepAfter(source_id=x_id))
    y_id = session.state.selected_step_id
    session.dispatch(
        UpdateStep(
            step_id=y_id,
            changes=StepChanges(name="y", script_content="SELECT 2", output_dataset_id=2),
        )
    )
    return session


class TestPipelineSaveService:
    """Tests for PipelineSaveService.save against the fake backend."""

    @pytest.mark.asyncio
    async def test_create_new_pipeline(self, api_client, backend, test_settings):
        """Dependencies go out as names and the new id comes back into the state."""
        session = build_new_session(test_settings)
        assert session.is_new

        result = await PipelineSaveService(api_client).save(session)

        assert result.status == SaveStatus.CREATED
        assert result.ok
        assert result.message == "Pipeline created"
        method, path, body = backend.requests[-1]
        assert (method, path) == ("POST", "/pipelines")
        assert body["name"] == "P"
        steps = {s["name"]: s for s in body["steps"]}
        assert steps["y"]["dependsOnStepNames"] == ["x"]
        assert steps["x"]["dependsOnStepNames"] == []
        assert session.state.persisted_id == result.pipeline_id == 1
        assert session.state.is_dirty is False
        assert not session.is_saving

    @pytest.mark.asyncio
    async def test_update_existing_pipeline(self, api_client, backend, test_settings):
        pipeline_id = backend.seed({"name": "daily_load", "description": None, "steps": []})
        a = make_step("a")
        state = make_graph(a, persisted_id=pipeline_id, is_active=False, is_dirty=True)
        session = EditorSession(state=state, config=test_settings)

        result = await PipelineSaveService(api_client).save(session)

        assert result.status == SaveStatus.UPDATED
        assert result.message == "Pipeline saved"
        method, path, body = backend.requests[-1]
        assert (method, path) == ("PUT", f"/pipelines/{pipeline_id}")
        assert body["isActive"] is False
        assert [s["name"] for s in body["steps"]] == ["a"]
        assert session.state.persisted_id == pipeline_id
        assert session.state.is_dirty is False

    @pytest.mark.asyncio
    async def test_field_errors_block_save(self, api_client, backend, test_settings):
        """Errors are dispatched into the state and nothing is sent."""
        first, second = make_step("load"), make_step("load")
        state = make_graph(first, second, is_dirty=True)
        session = EditorSession(state=state, config=test_settings)

        result = await PipelineSaveService(api_client).save(session)

        assert result.status == SaveStatus.INVALID
        assert result.message == "Fix the highlighted input errors"
        assert len(result.errors) == 2
        assert session.state.validation_errors == tuple(result.errors)
        assert [e.field for e in session.state.errors_for(first.client_id)] == ["name"]
        assert session.state.is_dirty is True
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_hard_stop_leaves_state_alone(self, api_client, backend, test_settings):
        session = EditorSession(state=make_graph(name="P"), config=test_settings)

        result = await PipelineSaveService(api_client).save(session)

        assert result.status == SaveStatus.INVALID
        assert result.message == "At least one step is required"
        assert session.state.validation_errors == ()
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_backend_failure_keeps_state_dirty(self, api_client, backend, test_settings):
        """A failed save can be retried: id, dirty flag and steps are unchanged."""
        session = build_new_session(test_settings)
        before = session.state
        backend.fail_status = 500

        result = await PipelineSaveService(api_client).save(session)

        assert result.status == SaveStatus.FAILED
        assert result.message.startswith("Failed to save pipeline:")
        assert session.state is before
        assert session.state.persisted_id is None
        assert session.state.is_dirty is True
        assert not session.is_saving

        backend.fail_status = None
        retry = await PipelineSaveService(api_client).save(session)
        assert retry.status == SaveStatus.CREATED

    @pytest.mark.parametrize("bad_id", [0, -3, True])
    @pytest.mark.asyncio
    async def test_invalid_persisted_id(self, api_client, backend, test_settings, bad_id):
        state = make_graph(make_step("a")).model_copy(update={"persisted_id": bad_id})
        session = EditorSession(state=state, config=test_settings)

        with pytest.raises(InvalidPipelineIdError):
            await PipelineSaveService(api_client).save(session)
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_read_only_session_cannot_save(self, api_client):
        session = EditorSession(state=make_graph(make_step("a")), read_only=True)
        with pytest.raises(ReadOnlySessionError):
            await PipelineSaveService(api_client).save(session)

    @pytest.mark.asyncio
    async def test_concurrent_save_is_refused(self, api_client, backend, test_settings):
        """A second save on the same session fails while the first is in flight."""
        session = build_new_session(test_settings)
        service = PipelineSaveService(api_client)
        release = asyncio.Event()
        create = api_client.create_pipeline

        async def slow_create(request):
            await release.wait()
            return await create(request)

        api_client.create_pipeline = slow_create
        first = asyncio.create_task(service.save(session))
        await asyncio.sleep(0)
        assert session.is_saving
        with pytest.raises(SaveInProgressError):
            await service.save(session)

        release.set()
        result = await first
        assert result.status == SaveStatus.CREATED
        assert not session.is_saving
        assert len([r for r in backend.requests if r[0] == "POST"]) == 1


# ─── Edits during a save ────────────────────────────────────────────────────


class TestEditsDuringSave:
    """Edits dispatched while the request is in flight are not reported as saved."""

    @pytest.mark.asyncio
    async def test_update_keeps_late_edit_dirty(
        self, api_client, backend, test_settings, monkeypatch
    ):
        pipeline_id = backend.seed({"name": "daily_load", "steps": []})
        a = make_step("a")
        session = EditorSession(
            state=make_graph(a, persisted_id=pipeline_id, is_dirty=True), config=test_settings
        )
        update = api_client.update_pipeline

        async def update_while_editing(pipeline_id, request):
            session.dispatch(
                UpdateStep(step_id=a.client_id, changes=StepChanges(description="late edit"))
            )
            await update(pipeline_id, request)

        monkeypatch.setattr(api_client, "update_pipeline", update_while_editing)

        result = await PipelineSaveService(api_client).save(session)

        assert result.status == SaveStatus.UPDATED
        _, _, body = backend.requests[-1]
        assert "description" not in body["steps"][0]
        assert session.state.is_dirty is True
        assert session.step(a.client_id).description == "late edit"
        assert session.state.persisted_id == pipeline_id

    @pytest.mark.asyncio
    async def test_create_records_id_but_stays_dirty(
        self, api_client, backend, test_settings, monkeypatch
    ):
        session = build_new_session(test_settings)
        create = api_client.create_pipeline

        async def create_while_editing(request):
            session.dispatch(SetMeta(description="written during save"))
            return await create(request)

        monkeypatch.setattr(api_client, "create_pipeline", create_while_editing)

        result = await PipelineSaveService(api_client).save(session)

        assert result.status == SaveStatus.CREATED
        assert session.state.persisted_id == result.pipeline_id == 1
        assert not session.is_new
        assert session.state.is_dirty is True

    @pytest.mark.asyncio
    async def test_selection_during_save_still_clean(
        self, api_client, backend, test_settings, monkeypatch
    ):
        """Selecting a step is not an edit of the saved record."""
        session = build_new_session(test_settings)
        first_id = session.state.steps[0].client_id
        create = api_client.create_pipeline

        async def create_while_selecting(request):
            session.dispatch(SelectStep(step_id=first_id))
            return await create(request)

        monkeypatch.setattr(api_client, "create_pipeline", create_while_selecting)

        await PipelineSaveService(api_client).save(session)

        assert session.state.is_dirty is False
        assert session.state.selected_step_id == first_id


# ─── Malformed backend responses ────────────────────────────────────────────


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="OK"),
        httpx.Response(201, json={"unexpected": True}),
    ],
)
@pytest.mark.asyncio
async def test_malformed_create_response_fails_save(test_settings, response):
    """A 2xx create response that is not a pipeline fails the save like a server error."""
    transport = httpx.MockTransport(lambda request: response)
    session = build_new_session(test_settings)
    before = session.state

    async with PipelineAPIClient(base_url=BASE_URL, token="t", transport=transport) as client:
        result = await PipelineSaveService(client).save(session)

    assert result.status == SaveStatus.FAILED
    assert result.message == "Failed to save pipeline: Invalid create response"
    assert session.state is before
    assert session.state.is_dirty is True
    assert session.state.persisted_id is None
    assert not session.is_saving
