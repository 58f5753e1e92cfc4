"""MCP server for the artifact tracker tool interface.

Exposes artifact operations as MCP tools for agent-based workflows with structured I/O.
All operations use JSON input/output and structured error handling.
"""

import json
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import BaseModel, Field, ValidationError

from artifact_tracker.config import find_project_root
from artifact_tracker.errors import ArtifactTrackerError
from artifact_tracker.service import ArtifactService
from artifact_tracker.utils.logging import get_logger

# ============================================================================
# Error Models
# ============================================================================


class ErrorResponse(BaseModel):
    """Structured error response for MCP tools."""

    code: str = Field(..., description="Error code (NOT_FOUND, BUSY, VALIDATION_ERROR, etc.)")
    message: str = Field(..., description="Human-readable error message")


# ============================================================================
# Request/Response Models
# ============================================================================


class SyncRequest(BaseModel):
    """Request model for artifact_sync tool."""

    path: str = Field(..., min_length=1, description="Artifact path (relative or absolute)")
    content: str | None = Field(
        default=None, description="Full content (omit to read the file from disk)"
    )
    run_id: str | None = Field(default=None, description="Run id (default run if omitted)")


class MoveRequest(BaseModel):
    """Request model for artifact_move tool."""

    old_path: str = Field(..., min_length=1, description="Current artifact path")
    new_path: str = Field(..., min_length=1, description="New artifact path")
    refs_only: bool = Field(default=False, description="Only update the tracked path")
    run_id: str | None = Field(default=None, description="Run id (default run if omitted)")


class AddCommentRequest(BaseModel):
    """Request model for artifact_add_comment tool."""

    path: str = Field(..., min_length=1, description="Artifact path")
    target_text: str = Field(..., min_length=1, description="Exact text to anchor to")
    message: str = Field(..., min_length=1, max_length=10000, description="Comment body")
    author: str = Field(default="agent", min_length=1, max_length=200, description="Author name")
    line_hint: int | None = Field(
        default=None, gt=0, description="Prefer the occurrence nearest to this line"
    )
    run_id: str | None = Field(default=None, description="Run id (default run if omitted)")


class AddCommentResponse(BaseModel):
    """Response model for artifact_add_comment tool."""

    comment_id: str = Field(..., description="Generated comment ID (ULID)")
    line_hint: int = Field(..., description="Line the comment is anchored at")


class ListCommentsRequest(BaseModel):
    """Request model for artifact_list_comments tool."""

    path: str = Field(..., min_length=1, description="Artifact path")
    status: str = Field(default="open", description="Filter: open, resolved, or all")
    run_id: str | None = Field(default=None, description="Run id (default run if omitted)")


class ListCommentsResponse(BaseModel):
    """Response model for artifact_list_comments tool."""

    comments: list[dict[str, Any]] = Field(..., description="Comments in creation order")


class ResolveCommentRequest(BaseModel):
    """Request model for artifact_resolve_comment tool."""

    comment_id: str = Field(..., min_length=1, description="Comment ID (ULID)")
    resolver: str = Field(default="agent", min_length=1, description="Resolver name")
    run_id: str | None = Field(default=None, description="Run id (default run if omitted)")


class ResolveCommentResponse(BaseModel):
    """Response model for artifact_resolve_comment tool."""

    success: bool = Field(..., description="True once the comment is resolved")
    already_resolved: bool = Field(..., description="True if it was resolved before this call")
    resolved_by: str | None = Field(default=None, description="Who resolved the comment")
    resolved_at: str | None = Field(default=None, description="Timestamp of resolution")


class PathRequest(BaseModel):
    """Request model for tools addressing one artifact by path."""

    path: str = Field(..., min_length=1, description="Artifact path")
    run_id: str | None = Field(default=None, description="Run id (default run if omitted)")


class ListVersionsResponse(BaseModel):
    """Response model for artifact_list_versions tool."""

    versions: list[dict[str, Any]] = Field(..., description="Versions, oldest first")


class GetVersionRequest(BaseModel):
    """Request model for artifact_get_version tool."""

    path: str = Field(..., min_length=1, description="Artifact path")
    version: int = Field(..., description="Version number (1-indexed)")
    run_id: str | None = Field(default=None, description="Run id (default run if omitted)")


class ListArtifactsRequest(BaseModel):
    """Request model for artifact_list tool."""

    run_id: str | None = Field(default=None, description="Run id (default run if omitted)")


class ListArtifactsResponse(BaseModel):
    """Response model for artifact_list tool."""

    artifacts: list[dict[str, Any]] = Field(..., description="Artifacts ordered by path")


# ============================================================================
# MCP Server
# ============================================================================


# Initialize MCP server
mcp = Server("artifact-tracker")

_RUN_ID_PROPERTY = {
    "type": "string",
    "description": "Run id (omit for the default run)",
}


def _path_property(description: str = "Artifact path (relative or absolute)") -> dict[str, Any]:
    return {"type": "string", "description": description}


@mcp.list_tools()
async def list_tools() -> list[Tool]:
    """List all available MCP tools."""
    return [
        Tool(
            name="artifact_sync",
            description=(
                "Record a new version of an artifact (registers it on first sync) "
                "and relocate its open comments"
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "path": _path_property(),
                    "content": {
                        "type": "string",
                        "description": "Full content (omit to read the file from disk)",
                    },
                    "run_id": _RUN_ID_PROPERTY,
                },
                "required": ["path"],
            },
        ),
        Tool(
            name="artifact_move",
            description="Move an artifact to a new path, preserving history and comments",
            inputSchema={
                "type": "object",
                "properties": {
                    "old_path": _path_property("Current artifact path"),
                    "new_path": _path_property("New artifact path"),
                    "refs_only": {
                        "type": "boolean",
                        "description": "Only update the tracked path; the file was already moved",
                        "default": False,
                    },
                    "run_id": _RUN_ID_PROPERTY,
                },
                "required": ["old_path", "new_path"],
            },
        ),
        Tool(
            name="artifact_add_comment",
            description="Anchor a comment to exact text in the latest version of an artifact",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": _path_property(),
                    "target_text": {
                        "type": "string",
                        "description": "Exact text to anchor to",
                        "minLength": 1,
                    },
                    "message": {
                        "type": "string",
                        "description": "Comment body",
                        "minLength": 1,
                        "maxLength": 10000,
                    },
                    "author": {
                        "type": "string",
                        "description": "Author name (default: agent)",
                        "default": "agent",
                    },
                    "line_hint": {
                        "type": "integer",
                        "description": "Prefer the occurrence nearest to this line (1-indexed)",
                        "minimum": 1,
                    },
                    "run_id": _RUN_ID_PROPERTY,
                },
                "required": ["path", "target_text", "message"],
            },
        ),
        Tool(
            name="artifact_list_comments",
            description="List comments on an artifact",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": _path_property(),
                    "status": {
                        "type": "string",
                        "description": "Filter by status (default: open)",
                        "enum": ["open", "resolved", "all"],
                        "default": "open",
                    },
                    "run_id": _RUN_ID_PROPERTY,
                },
                "required": ["path"],
            },
        ),
        Tool(
            name="artifact_resolve_comment",
            description="Resolve a comment (resolving twice reports already_resolved)",
            inputSchema={
                "type": "object",
                "properties": {
                    "comment_id": {
                        "type": "string",
                        "description": "Comment ID (ULID)",
                    },
                    "resolver": {
                        "type": "string",
                        "description": "Resolver name (default: agent)",
                        "default": "agent",
                    },
                    "run_id": _RUN_ID_PROPERTY,
                },
                "required": ["comment_id"],
            },
        ),
        Tool(
            name="artifact_list_versions",
            description="List the versions of an artifact, oldest first",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": _path_property(),
                    "run_id": _RUN_ID_PROPERTY,
                },
                "required": ["path"],
            },
        ),
        Tool(
            name="artifact_get_version",
            description="Get the full content of one version of an artifact",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": _path_property(),
                    "version": {
                        "type": "integer",
                        "description": "Version number (1-indexed)",
                        "minimum": 1,
                    },
                    "run_id": _RUN_ID_PROPERTY,
                },
                "required": ["path", "version"],
            },
        ),
        Tool(
            name="artifact_list",
            description="List tracked artifacts with ok/missing file status",
            inputSchema={
                "type": "object",
                "properties": {
                    "run_id": _RUN_ID_PROPERTY,
                },
                "required": [],
            },
        ),
    ]


@mcp.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle MCP tool calls."""
    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        return _error("UNKNOWN_TOOL", f"Unknown tool: {name}")
    try:
        return await handler(arguments or {})
    except Exception as e:
        # Catch-all for unexpected errors
        get_logger().exception(f"Unexpected error in {name}", e)
        return _error("INTERNAL_ERROR", str(e))


# ============================================================================
# Helpers
# ============================================================================


def get_service() -> ArtifactService:
    """Service for the project containing the working directory."""
    return ArtifactService(find_project_root(Path.cwd()))


def _resolve_path(path: str) -> Path:
    """Relative tool paths are taken relative to the working directory."""
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = Path.cwd() / candidate
    return candidate


def _json(data: Any) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(data, indent=2))]


def _error(code: str, message: str) -> list[TextContent]:
    error = ErrorResponse(code=code, message=message)
    return _json({"error": error.model_dump()})


def _validation_error(e: ValidationError) -> list[TextContent]:
    return _error("VALIDATION_ERROR", f"Invalid input: {e}")


def _tracker_error(e: ArtifactTrackerError) -> list[TextContent]:
    return _error(e.code, str(e))


# ============================================================================
# Tool Handlers
# ============================================================================


async def handle_artifact_sync(arguments: Any) -> list[TextContent]:
    """Handle artifact_sync tool call."""
    try:
        req = SyncRequest(**arguments)
    except ValidationError as e:
        return _validation_error(e)

    try:
        result = get_service().sync(req.run_id, _resolve_path(req.path), req.content)
    except ArtifactTrackerError as e:
        return _tracker_error(e)

    return _json(result.model_dump(mode="json"))


async def handle_artifact_move(arguments: Any) -> list[TextContent]:
    """Handle artifact_move tool call."""
    try:
        req = MoveRequest(**arguments)
    except ValidationError as e:
        return _validation_error(e)

    try:
        result = get_service().move(
            req.run_id,
            _resolve_path(req.old_path),
            _resolve_path(req.new_path),
            refs_only=req.refs_only,
        )
    except ArtifactTrackerError as e:
        return _tracker_error(e)

    return _json(result.model_dump(mode="json"))


async def handle_artifact_add_comment(arguments: Any) -> list[TextContent]:
    """Handle artifact_add_comment tool call."""
    try:
        req = AddCommentRequest(**arguments)
    except ValidationError as e:
        return _validation_error(e)

    try:
        comment = get_service().add_comment(
            req.run_id,
            _resolve_path(req.path),
            req.target_text,
            req.message,
            req.author,
            req.line_hint,
        )
    except ArtifactTrackerError as e:
        return _tracker_error(e)

    response = AddCommentResponse(comment_id=comment.id, line_hint=comment.anchor.line_hint)
    return _json(response.model_dump())


async def handle_artifact_list_comments(arguments: Any) -> list[TextContent]:
    """Handle artifact_list_comments tool call."""
    try:
        req = ListCommentsRequest(**arguments)
    except ValidationError as e:
        return _validation_error(e)

    try:
        comments = get_service().list_comments(req.run_id, _resolve_path(req.path), req.status)
    except ArtifactTrackerError as e:
        return _tracker_error(e)

    response = ListCommentsResponse(comments=[c.model_dump(mode="json") for c in comments])
    return _json(response.model_dump())


async def handle_artifact_resolve_comment(arguments: Any) -> list[TextContent]:
    """Handle artifact_resolve_comment tool call."""
    try:
        req = ResolveCommentRequest(**arguments)
    except ValidationError as e:
        return _validation_error(e)

    try:
        outcome = get_service().resolve_comment(req.run_id, req.comment_id, req.resolver)
    except ArtifactTrackerError as e:
        return _tracker_error(e)

    response = ResolveCommentResponse(
        success=True,
        already_resolved=outcome.already_resolved,
        resolved_by=outcome.comment.resolved_by,
        resolved_at=outcome.comment.resolved_at,
    )
    return _json(response.model_dump())


async def handle_artifact_list_versions(arguments: Any) -> list[TextContent]:
    """Handle artifact_list_versions tool call."""
    try:
        req = PathRequest(**arguments)
    except ValidationError as e:
        return _validation_error(e)

    try:
        versions = get_service().list_versions(req.run_id, _resolve_path(req.path))
    except ArtifactTrackerError as e:
        return _tracker_error(e)

    response = ListVersionsResponse(versions=[v.model_dump(mode="json") for v in versions])
    return _json(response.model_dump())


async def handle_artifact_get_version(arguments: Any) -> list[TextContent]:
    """Handle artifact_get_version tool call."""
    try:
        req = GetVersionRequest(**arguments)
    except ValidationError as e:
        return _validation_error(e)

    try:
        found = get_service().get_version(req.run_id, _resolve_path(req.path), req.version)
    except ArtifactTrackerError as e:
        return _tracker_error(e)

    return _json(found.model_dump(mode="json"))


async def handle_artifact_list(arguments: Any) -> list[TextContent]:
    """Handle artifact_list tool call."""
    try:
        req = ListArtifactsRequest(**arguments)
    except ValidationError as e:
        return _validation_error(e)

    try:
        artifacts = get_service().list_artifacts(req.run_id)
    except ArtifactTrackerError as e:
        return _tracker_error(e)

    response = ListArtifactsResponse(artifacts=[a.model_dump(mode="json") for a in artifacts])
    return _json(response.model_dump())


TOOL_HANDLERS = {
    "artifact_sync": handle_artifact_sync,
    "artifact_move": handle_artifact_move,
    "artifact_add_comment": handle_artifact_add_comment,
    "artifact_list_comments": handle_artifact_list_comments,
    "artifact_resolve_comment": handle_artifact_resolve_comment,
    "artifact_list_versions": handle_artifact_list_versions,
    "artifact_get_version": handle_artifact_get_version,
    "artifact_list": handle_artifact_list,
}


# ============================================================================
# Main Entry Point
# ============================================================================


async def main() -> None:
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await mcp.run(read_stream, write_stream, mcp.create_initialization_options())


def run_server() -> None:
    """Synchronous entry point for running the server."""
    import asyncio

    asyncio.run(main())


if __name__ == "__main__":
    run_server()
