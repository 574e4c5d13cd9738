"""Pydantic schemas for request/response validation."""

from app.schemas.analysis import AnalysisRow, CompetitorEntry, DumpPage
from app.schemas.auth import AuthUser, UserContext
from app.schemas.mcp import JsonRpcError, JsonRpcRequest, JsonRpcResponse
from app.schemas.webhook import TaskRunEvent, TaskRunEventData

__all__ = [
    "AnalysisRow",
    "AuthUser",
    "CompetitorEntry",
    "DumpPage",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "TaskRunEvent",
    "TaskRunEventData",
    "UserContext",
]
