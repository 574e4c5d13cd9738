"""Research service webhook envelope."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

TASK_RUN_STATUS_EVENT = "task_run.status"


class TaskRunError(BaseModel):
    model_config = ConfigDict(extra="allow")

    message: str | None = None


class TaskRunEventData(BaseModel):
    """Task run snapshot delivered with a status event. metadata echoes the submission."""

    model_config = ConfigDict(extra="allow")

    run_id: str | None = None
    status: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    error: TaskRunError | None = None


class TaskRunEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    data: TaskRunEventData = Field(default_factory=TaskRunEventData)
