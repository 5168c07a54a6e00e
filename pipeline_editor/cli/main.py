#!/usr/bin/env python3
"""Pipeline editor CLI - validate, lay out and sync pipeline definition files.

A definition file is a pipeline in the backend's JSON shape
(``PipelineDetailResponse``); steps reference each other by name.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from pipeline_editor.client import PipelineAPIClient, PipelineAPIError
from pipeline_editor.exceptions.domain import PipelineFileError
from pipeline_editor.models.pipeline import PipelineDetailResponse
from pipeline_editor.services.editor import (
    EditorSession,
    PipelineSaveService,
    hydrate,
    validate_pipeline,
)
from pipeline_editor.settings import settings
from pipeline_editor.utils.logger import logger, setup_logging


def load_definition(path: str | Path) -> PipelineDetailResponse:
    """Read a pipeline definition file.

    Raises:
        PipelineFileError: If the file is missing, not JSON, or not a pipeline
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise PipelineFileError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise PipelineFileError(f"{path} is not valid JSON: {e}") from e

    try:
        return PipelineDetailResponse.model_validate(data)
    except PydanticValidationError as e:
        raise PipelineFileError(f"{path} is not a pipeline definition: {e}") from e


def validate_file(path: str) -> int:
    """Validate a definition file; returns the process exit code."""
    state = hydrate(load_definition(path))
    outcome = validate_pipeline(state)
    if outcome.message:
        print(outcome.message)
        return 1

    names = {step.client_id: step.name or "(unnamed)" for step in state.steps}
    for error in outcome.errors:
        print(f"{names[error.step_id]}: {error.field}: {error.message}")
    if outcome.errors:
        return 1

    logger.info(f"Pipeline '{state.name}' is valid ({len(state.steps)} steps)")
    return 0


def layout_file(path: str) -> int:
    """Print auto-layout positions for every step of a definition file."""
    state = hydrate(load_definition(path))
    for step in state.steps:
        print(f"{step.name}: {step.position.x:g}, {step.position.y:g}")
    return 0


async def pull_pipeline(pipeline_id: int, output: str, client: PipelineAPIClient) -> int:
    """Fetch a pipeline and write it as a definition file."""
    detail = await client.get_pipeline(pipeline_id)
    Path(output).write_text(
        detail.model_dump_json(by_alias=True, exclude_none=True, indent=2), encoding="utf-8"
    )
    logger.info(f"Wrote pipeline '{detail.name}' to {output}")
    return 0


async def push_file(path: str, client: PipelineAPIClient, new: bool = False) -> int:
    """Create or update a pipeline from a definition file."""
    state = hydrate(load_definition(path))
    if new:
        state = state.model_copy(update={"persisted_id": None})

    session = EditorSession(state=state)
    result = await PipelineSaveService(client).save(session)

    names = {step.client_id: step.name or "(unnamed)" for step in state.steps}
    for error in result.errors:
        print(f"{names[error.step_id]}: {error.field}: {error.message}")

    if not result.ok:
        logger.error(result.message)
        return 1
    logger.info(f"{result.message} (id={result.pipeline_id})")
    return 0


async def _with_client(args: argparse.Namespace) -> int:
    async with PipelineAPIClient(base_url=args.url, token=args.token) as client:
        if args.command == "pull":
            return await pull_pipeline(args.pipeline_id, args.output, client)
        return await push_file(args.file, client, new=args.new)


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="pipeline-editor", description="Pipeline editor CLI - pipeline definition tooling"
    )
    parser.add_argument(
        "--url", type=str, default=None, help=f"API base URL (default: {settings.api_url})"
    )
    parser.add_argument("--token", type=str, default=None, help="API bearer token")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser("validate", help="Validate a definition file")
    validate_parser.add_argument("file", help="Pipeline definition JSON file")

    layout_parser = subparsers.add_parser("layout", help="Print auto-layout positions")
    layout_parser.add_argument("file", help="Pipeline definition JSON file")

    pull_parser = subparsers.add_parser("pull", help="Download a pipeline definition")
    pull_parser.add_argument("pipeline_id", type=int, help="Pipeline id")
    pull_parser.add_argument("-o", "--output", required=True, help="Output JSON file")

    push_parser = subparsers.add_parser("push", help="Create or update a pipeline from a file")
    push_parser.add_argument("file", help="Pipeline definition JSON file")
    push_parser.add_argument(
        "--new", action="store_true", help="Always create a new pipeline, ignoring the file's id"
    )

    args = parser.parse_args(argv)
    if args.verbose:
        setup_logging(settings, level="DEBUG")

    try:
        if args.command == "validate":
            code = validate_file(args.file)
        elif args.command == "layout":
            code = layout_file(args.file)
        elif args.command in ("pull", "push"):
            code = asyncio.run(_with_client(args))
        else:
            parser.print_help()
            code = 1
    except PipelineFileError as e:
        logger.error(str(e))
        code = 1
    except PipelineAPIError as e:
        logger.error(f"{e.message} {e.detail or ''}".strip())
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
