"""MCP (JSON-RPC 2.0 over HTTP) endpoint exposing the Markdown report to agents.

Read-only: the single tool returns the same report as GET /md/{hostname}.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from app.api.deps import get_store, public_origin
from app.schemas.mcp import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
)
from app.services.analysis_store import AnalysisStore
from app.services.reports import analysis_not_found_message, render_markdown_report

logger = logging.getLogger(__name__)

router = APIRouter()

SERVER_INFO = {"name": "Competitive Analysis MCP", "version": "1.0.0"}
DEFAULT_PROTOCOL_VERSION = "2025-06-18"
MARKDOWN_TOOL = "getAnalysisMarkdown"

TOOLS = [
    {
        "name": MARKDOWN_TOOL,
        "description": (
            "Get the competitive analysis report for a company as Markdown, "
            "including every competitor that has been analyzed."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "hostname": {
                    "type": "string",
                    "description": "Company hostname, e.g. example.com",
                }
            },
            "required": ["hostname"],
        },
    }
]


class _InvalidParams(Exception):
    pass


def _error(request_id: Any, code: int, message: str) -> JSONResponse:
    body = JsonRpcResponse(id=request_id, error=JsonRpcError(code=code, message=message))
    return JSONResponse(body.model_dump(exclude_none=True))


def _call_tool(params: dict[str, Any], store: AnalysisStore, origin: str) -> dict[str, Any]:
    if params.get("name") != MARKDOWN_TOOL:
        raise _InvalidParams(f"Unknown tool: {params.get('name')}")
    arguments = params.get("arguments") or {}
    hostname = arguments.get("hostname") if isinstance(arguments, dict) else None
    if not isinstance(hostname, str) or not hostname.strip():
        raise _InvalidParams("hostname is required")
    hostname = hostname.strip()

    report = render_markdown_report(store, hostname)
    if report is None:
        return {
            "content": [{"type": "text", "text": analysis_not_found_message(origin, hostname)}],
            "isError": True,
        }
    return {"content": [{"type": "text", "text": report}], "isError": False}


@router.post("/mcp")
async def mcp(request: Request, store: AnalysisStore = Depends(get_store)):
    """Handle one JSON-RPC request or notification."""
    try:
        payload = json.loads(await request.body())
    except ValueError:
        return _error(None, PARSE_ERROR, "Parse error")

    try:
        rpc = JsonRpcRequest.model_validate(payload)
    except ValidationError:
        request_id = payload.get("id") if isinstance(payload, dict) else None
        return _error(request_id, INVALID_REQUEST, "Invalid request")

    if rpc.method.startswith("notifications/"):
        return Response(status_code=202)

    logger.info("MCP %s", rpc.method)
    if rpc.method == "initialize":
        result: dict[str, Any] = {
            "protocolVersion": rpc.params.get("protocolVersion") or DEFAULT_PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": SERVER_INFO,
        }
    elif rpc.method == "ping":
        result = {}
    elif rpc.method == "tools/list":
        result = {"tools": TOOLS}
    elif rpc.method == "tools/call":
        try:
            result = _call_tool(rpc.params, store, public_origin(request))
        except _InvalidParams as exc:
            return _error(rpc.id, INVALID_PARAMS, str(exc))
    else:
        return _error(rpc.id, METHOD_NOT_FOUND, f"Method not found: {rpc.method}")

    return JSONResponse(JsonRpcResponse(id=rpc.id, result=result).model_dump(exclude_none=True))
