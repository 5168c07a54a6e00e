"""Global fixtures: graph builders and an in-process fake pipeline backend."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from httpx import ASGITransport

from pipeline_editor.client import PipelineAPIClient
from pipeline_editor.models import PipelineGraph, Position, Step
from pipeline_editor.settings import Settings

BASE_URL = "http://testserver"
API_TOKEN = "test-token"


def make_step(name: str, *depends_on: Step, **fields: Any) -> Step:
    """Create a step with a valid SQL script that depends on the given steps."""
    fields.setdefault("script_content", f"SELECT * FROM {name or 'src'}")
    fields.setdefault("output_dataset_id", 1)
    return Step(name=name, depends_on=tuple(dep.client_id for dep in depends_on), **fields)


def make_graph(*steps: Step, **fields: Any) -> PipelineGraph:
    fields.setdefault("name", "daily_load")
    return PipelineGraph(steps=steps, **fields)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with the default layout constants, independent of env and TOML files."""
    return Settings(
        api_url=BASE_URL,
        api_token=API_TOKEN,
        node_width=220,
        node_height=100,
        node_sep=60,
        rank_sep=150,
        add_after_offset=320,
    )


@pytest.fixture
def chain() -> tuple[PipelineGraph, Step, Step, Step]:
    """Three steps A -> B -> C (B depends on A, C depends on B)."""
    a = make_step("A", position=Position(x=0, y=0))
    b = make_step("B", a, position=Position(x=370, y=0))
    c = make_step("C", b, position=Position(x=740, y=0))
    return make_graph(a, b, c), a, b, c


# ─── Fake backend ───────────────────────────────────────────────────────────


class FakeBackend:
    """In-memory stand-in for the pipeline REST API.

    Stores raw camelCase payloads so tests can assert the exact wire shape.
    """

    def __init__(self) -> None:
        self.pipelines: dict[int, dict[str, Any]] = {}
        self.executions: dict[int, dict[str, Any]] = {}
        self.requests: list[tuple[str, str, Any]] = []
        self.datasets = [
            {"id": 1, "name": "Raw orders", "tableName": "raw_orders"},
            {"id": 2, "name": "Daily revenue", "tableName": "daily_revenue"},
        ]
        self.fail_status: int | None = None
        self._next_id = 1

    def seed(self, payload: dict[str, Any]) -> int:
        """Store a pipeline as if it had been created earlier."""
        pipeline_id = self._next_id
        self._next_id += 1
        now = datetime.now(UTC).isoformat()
        self.pipelines[pipeline_id] = {
            "id": pipeline_id,
            "isActive": True,
            "createdBy": "tester",
            "createdAt": now,
            "updatedBy": None,
            "updatedAt": None,
            **payload,
        }
        return pipeline_id


def create_backend_app(backend: FakeBackend) -> FastAPI:
    app = FastAPI()

    @app.middleware("http")
    async def guard(request: Request, call_next: Any) -> Response:
        if request.headers.get("Authorization") != f"Bearer {API_TOKEN}":
            return JSONResponse({"message": "Unauthorized"}, status_code=401)
        if backend.fail_status is not None:
            return JSONResponse({"message": "Backend unavailable"}, status_code=backend.fail_status)
        return await call_next(request)

    def missing(pipeline_id: int) -> JSONResponse:
        return JSONResponse({"message": f"Pipeline {pipeline_id} not found"}, status_code=404)

    @app.get("/pipelines")
    async def list_pipelines(page: int = 0, size: int = 20) -> dict[str, Any]:
        items = [
            {
                "id": p["id"],
                "name": p["name"],
                "description": p.get("description"),
                "isActive": p["isActive"],
                "createdBy": p["createdBy"],
                "stepCount": len(p["steps"]),
                "createdAt": p["createdAt"],
            }
            for p in backend.pipelines.values()
        ]
        return {
            "content": items[page * size : (page + 1) * size],
            "page": page,
            "size": size,
            "totalElements": len(items),
            "totalPages": (len(items) + size - 1) // size,
        }

    @app.get("/pipelines/{pipeline_id}")
    async def get_pipeline(pipeline_id: int) -> Any:
        if pipeline_id not in backend.pipelines:
            return missing(pipeline_id)
        return backend.pipelines[pipeline_id]

    @app.post("/pipelines", status_code=201)
    async def create_pipeline(request: Request) -> Any:
        body = await request.json()
        backend.requests.append(("POST", "/pipelines", body))
        pipeline_id = backend.seed(body)
        return backend.pipelines[pipeline_id]

    @app.put("/pipelines/{pipeline_id}")
    async def update_pipeline(pipeline_id: int, request: Request) -> Any:
        body = await request.json()
        backend.requests.append(("PUT", f"/pipelines/{pipeline_id}", body))
        if pipeline_id not in backend.pipelines:
            return missing(pipeline_id)
        backend.pipelines[pipeline_id].update(body, updatedBy="tester")
        return Response(status_code=200)

    @app.delete("/pipelines/{pipeline_id}", status_code=204)
    async def delete_pipeline(pipeline_id: int) -> Response:
        if backend.pipelines.pop(pipeline_id, None) is None:
            return missing(pipeline_id)
        return Response(status_code=204)

    @app.post("/pipelines/{pipeline_id}/execute")
    async def execute_pipeline(pipeline_id: int) -> Any:
        if pipeline_id not in backend.pipelines:
            return missing(pipeline_id)
        execution_id = len(backend.executions) + 1
        steps = backend.pipelines[pipeline_id]["steps"]
        backend.executions[execution_id] = {
            "id": execution_id,
            "pipelineId": pipeline_id,
            "pipelineName": backend.pipelines[pipeline_id]["name"],
            "status": "RUNNING",
            "executedBy": "tester",
            "stepExecutions": [
                {
                    "id": i + 1,
                    "stepName": step["name"],
                    "status": "RUNNING" if i == 0 else "PENDING",
                }
                for i, step in enumerate(steps)
            ],
        }
        return {
            "id": execution_id,
            "pipelineId": pipeline_id,
            "status": "RUNNING",
            "executedBy": "tester",
        }

    @app.get("/pipelines/{pipeline_id}/executions")
    async def get_executions(pipeline_id: int) -> list[dict[str, Any]]:
        return [
            {k: v for k, v in e.items() if k not in ("stepExecutions", "pipelineName")}
            for e in backend.executions.values()
            if e["pipelineId"] == pipeline_id
        ]

    @app.get("/pipelines/{pipeline_id}/executions/{execution_id}")
    async def get_execution(pipeline_id: int, execution_id: int) -> Any:
        execution = backend.executions.get(execution_id)
        if execution is None or execution["pipelineId"] != pipeline_id:
            return JSONResponse({"message": "Execution not found"}, status_code=404)
        return execution

    @app.get("/datasets")
    async def get_datasets(page: int = 0, size: int = 20) -> dict[str, Any]:
        return {
            "content": backend.datasets[: size],
            "page": page,
            "size": size,
            "totalElements": len(backend.datasets),
            "totalPages": 1,
        }

    return app


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest_asyncio.fixture
async def api_client(backend: FakeBackend) -> AsyncGenerator[PipelineAPIClient, None]:
    """API client wired to the fake backend through an ASGI transport."""
    transport = ASGITransport(app=create_backend_app(backend))
    async with PipelineAPIClient(base_url=BASE_URL, token=API_TOKEN, transport=transport) as client:
        yield client
