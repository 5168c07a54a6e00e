"""
Pipeline backend API client.

This module provides an async client for the pipeline REST API: pipeline
CRUD, executions, and the dataset lookup used by the step dataset pickers.
"""

from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from pipeline_editor.models import (
    CreatePipelineRequest,
    DatasetReference,
    ExecutionDetailResponse,
    PageResponse,
    PipelineDetailResponse,
    PipelineExecutionResponse,
    PipelineResponse,
    UpdatePipelineRequest,
)
from pipeline_editor.settings import settings
from pipeline_editor.types import JSONDict
from pipeline_editor.utils.logger import logger


class PipelineAPIError(Exception):
    """Base exception for pipeline API errors."""

    def __init__(self, message: str, status_code: int | None = None, detail: Any = None) -> None:
        self.message = message
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class PipelineAuthError(PipelineAPIError):
    """Authentication-related errors."""

    pass


class PipelineAPIClient:
    """Client for the pipeline backend.

    Example:
        ```python
        async with PipelineAPIClient("http://localhost:8080/api/v1", token="...") as client:
            detail = await client.get_pipeline(42)
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        log_requests: bool = False,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL of the API (defaults to ``settings.api_url``)
            token: Bearer token sent with every request (defaults to ``settings.api_token``)
            timeout: Request timeout in seconds (defaults to ``settings.request_timeout``)
            transport: Custom httpx transport, e.g. ``httpx.ASGITransport`` in tests
            log_requests: Enable request/response logging (default: False)
        """
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.log_requests = log_requests

        token = token if token is not None else settings.api_token
        headers = {"Authorization": f"Bearer {token}"} if token else {}

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout if timeout is not None else settings.request_timeout,
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "PipelineAPIClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def _log_request(self, method: str, url: str, **kwargs: Any) -> None:
        if self.log_requests:
            logger.debug(f"API Request: {method} {url}", extra={"request_data": kwargs})

    def _log_response(self, response: httpx.Response) -> None:
        if self.log_requests:
            logger.debug(
                f"API Response: {response.status_code}",
                extra={"response_data": response.text},
            )

    async def _request(
        self,
        method: str,
        endpoint: str,
        raise_for_status: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make HTTP request to API.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint relative to the base URL (e.g., "/pipelines")
            raise_for_status: Raise exception on HTTP errors
            **kwargs: Additional arguments passed to httpx request

        Returns:
            HTTP response

        Raises:
            PipelineAPIError: On API errors
            PipelineAuthError: On authentication errors
        """
        url = endpoint if endpoint.startswith("http") else f"{self.base_url}{endpoint}"
        self._log_request(method, url, **kwargs)

        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error during request: {e}")
            raise PipelineAPIError(f"HTTP error: {e!s}") from e

        self._log_response(response)

        if raise_for_status:
            if response.status_code == 401:
                raise PipelineAuthError(
                    "Authentication required or session expired",
                    status_code=401,
                    detail=response.text,
                )
            elif response.status_code == 403:
                raise PipelineAuthError(
                    "Access forbidden",
                    status_code=403,
                    detail=response.text,
                )
            elif response.status_code >= 400:
                detail: Any
                try:
                    detail = response.json()
                except ValueError:
                    detail = response.text

                raise PipelineAPIError(
                    f"API error: {response.status_code}",
                    status_code=response.status_code,
                    detail=detail,
                )

        return response

    # ==================== Pipelines ====================

    async def list_pipelines(self, page: int = 0, size: int = 20) -> PageResponse[PipelineResponse]:
        """Get one page of pipelines."""
        response = await self._request("GET", "/pipelines", params={"page": page, "size": size})
        return PageResponse[PipelineResponse].model_validate(response.json())

    async def get_pipeline(self, pipeline_id: int) -> PipelineDetailResponse:
        """Get a pipeline with all its steps.

        Args:
            pipeline_id: Persisted pipeline id

        Returns:
            Pipeline detail
        """
        response = await self._request("GET", f"/pipelines/{pipeline_id}")
        return PipelineDetailResponse.model_validate(response.json())

    async def create_pipeline(
        self, request: CreatePipelineRequest | JSONDict
    ) -> PipelineDetailResponse:
        """Create a new pipeline.

        Args:
            request: Pipeline definition (model or dict)

        Returns:
            Created pipeline, including its new id
        """
        if isinstance(request, dict):
            request = CreatePipelineRequest.model_validate(request)

        response = await self._request(
            "POST",
            "/pipelines",
            json=request.model_dump(by_alias=True, mode="json", exclude_none=True),
        )
        try:
            created = PipelineDetailResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise PipelineAPIError(
                "Invalid create response",
                status_code=response.status_code,
                detail=response.text,
            ) from e
        if created.id is None:
            raise PipelineAPIError(
                "Create response has no pipeline id",
                status_code=response.status_code,
                detail=response.text,
            )
        logger.info(f"Created pipeline '{created.name}' (id={created.id})")
        return created

    async def update_pipeline(
        self, pipeline_id: int, request: UpdatePipelineRequest | JSONDict
    ) -> None:
        """Replace a pipeline's metadata and steps.

        Args:
            pipeline_id: Persisted pipeline id
            request: New definition (model or dict)
        """
        if isinstance(request, dict):
            request = UpdatePipelineRequest.model_validate(request)

        await self._request(
            "PUT",
            f"/pipelines/{pipeline_id}",
            json=request.model_dump(by_alias=True, mode="json", exclude_none=True),
        )
        logger.info(f"Updated pipeline {pipeline_id} ({len(request.steps)} steps)")

    async def delete_pipeline(self, pipeline_id: int) -> None:
        """Delete a pipeline."""
        await self._request("DELETE", f"/pipelines/{pipeline_id}")

    # ==================== Executions ====================

    async def execute_pipeline(self, pipeline_id: int) -> PipelineExecutionResponse:
        """Start an execution of a pipeline."""
        response = await self._request("POST", f"/pipelines/{pipeline_id}/execute")
        return PipelineExecutionResponse.model_validate(response.json())

    async def get_executions(self, pipeline_id: int) -> list[PipelineExecutionResponse]:
        """Get the execution history of a pipeline."""
        response = await self._request("GET", f"/pipelines/{pipeline_id}/executions")
        return [PipelineExecutionResponse.model_validate(e) for e in response.json()]

    async def get_execution(self, pipeline_id: int, execution_id: int) -> ExecutionDetailResponse:
        """Get one execution with its step executions."""
        response = await self._request(
            "GET", f"/pipelines/{pipeline_id}/executions/{execution_id}"
        )
        return ExecutionDetailResponse.model_validate(response.json())

    # ==================== Datasets ====================

    async def get_datasets(self, size: int = 1000) -> list[DatasetReference]:
        """Get dataset references for the output/input dataset pickers.

        Args:
            size: Page size; the editor loads all datasets in one page

        Returns:
            List of ``{id, name, tableName}`` references
        """
        response = await self._request("GET", "/datasets", params={"page": 0, "size": size})
        page = PageResponse[DatasetReference].model_validate(response.json())
        return page.content
