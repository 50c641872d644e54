"""Task data models and the structured result of a voice command."""

import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(Enum):
    """Workflow status of a task."""
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


class TaskPriority(Enum):
    """Priority of a task."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class ParsedTaskResult(BaseModel):
    """Task fields extracted from a spoken command by the parsing service."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    original_transcript: Optional[str] = Field(default=None, alias="originalTranscript")


def _match_enum(enum_cls, label: Optional[str], default):
    # Exact label match only; loose strings fall back to the default
    for member in enum_cls:
        if member.value == label:
            return member
    return default


@dataclass
class Task:
    """A tracked task."""
    id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: str = ""  # ISO 8601 string or empty
    created_at: int = field(default_factory=lambda: int(time.time() * 1000))

    @classmethod
    def from_parsed(cls, task_id: str, result: ParsedTaskResult) -> "Task":
        """Pre-fill a new task from a parsed voice command.

        Status and priority labels that are not exact enum values fall back
        to "To Do" and "Medium".
        """
        return cls(
            id=task_id,
            title=result.title or "",
            description=result.description or "",
            status=_match_enum(TaskStatus, result.status, TaskStatus.TODO),
            priority=_match_enum(TaskPriority, result.priority, TaskPriority.MEDIUM),
            due_date=result.due_date or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["priority"] = self.priority.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            status=_match_enum(TaskStatus, data.get("status"), TaskStatus.TODO),
            priority=_match_enum(TaskPriority, data.get("priority"), TaskPriority.MEDIUM),
            due_date=data.get("due_date", ""),
            created_at=data.get("created_at", int(time.time() * 1000)),
        )
