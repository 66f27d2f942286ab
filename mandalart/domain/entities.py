"""Internal domain entities as pydantic models for validation at boundaries."""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Slot 0 is the center of a grid; children live in the eight slots around it.
CENTER_SLOT = 0
CHILD_SLOTS = range(1, 9)


class NodeType(str, Enum):
    GOAL = "GOAL"
    TASK = "TASK"


class NodeStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    BLOCKED = "BLOCKED"
    REVIEW = "REVIEW"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class LogAction(str, Enum):
    CREATE_NODE = "CREATE_NODE"
    UPDATE_NODE = "UPDATE_NODE"
    DELETE_NODE = "DELETE_NODE"
    MOVE_NODE = "MOVE_NODE"
    APPROVE_CHANGE = "APPROVE_CHANGE"
    REJECT_CHANGE = "REJECT_CHANGE"


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DateRange(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class TaskConfig(BaseModel):
    """Recurring/quantity configuration of a TASK node."""

    due_date: Optional[date] = None
    is_recurring: bool = False
    estimated_duration: Optional[int] = Field(default=None, ge=0, description="Minutes")
    target_count: Optional[int] = Field(default=None, ge=0)
    current_count: Optional[int] = Field(default=None, ge=0)
    unit_label: Optional[str] = None
    results_summary: Optional[str] = None
    priority: Optional[Priority] = None

    def derived_progress(self) -> Optional[int]:
        """Count-based progress for recurring tasks, None when not applicable."""
        if not self.is_recurring or not self.target_count:
            return None
        return min(100, (self.current_count or 0) * 100 // self.target_count)


class Assignee(BaseModel):
    id: str
    name: str
    photo_url: Optional[str] = None


class Actor(BaseModel):
    """The user on whose behalf a change is made."""

    user_id: str
    user_name: str = "Anonymous"


class Node(BaseModel):
    id: str
    project_id: str
    parent_id: Optional[str] = None
    depth: int = Field(ge=0)
    slot_index: int = Field(ge=0, le=8)
    title: str = ""
    description: Optional[str] = None
    node_type: NodeType = NodeType.GOAL
    status: NodeStatus = NodeStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    date_range: Optional[DateRange] = None
    task_config: Optional[TaskConfig] = None
    assignee: Optional[Assignee] = None
    department: Optional[str] = None
    order_index: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


class NodeDraft(BaseModel):
    """Attributes a caller supplies when creating a node."""

    model_config = ConfigDict(extra="forbid")

    title: str = ""
    description: Optional[str] = None
    node_type: NodeType = NodeType.GOAL
    status: NodeStatus = NodeStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    date_range: Optional[DateRange] = None
    task_config: Optional[TaskConfig] = None
    assignee: Optional[Assignee] = None
    department: Optional[str] = None
    order_index: int = 0


# Node attributes a patch may change but never clear
REQUIRED_NODE_FIELDS = frozenset({"title", "node_type", "status", "progress", "order_index"})


class NodePatch(BaseModel):
    """Partial attribute update. Position fields belong to moves only."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    node_type: Optional[NodeType] = None
    status: Optional[NodeStatus] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    date_range: Optional[DateRange] = None
    task_config: Optional[TaskConfig] = None
    assignee: Optional[Assignee] = None
    department: Optional[str] = None
    order_index: Optional[int] = None

    def cleared_required_fields(self) -> List[str]:
        """Fields explicitly set to None that a stored Node must always carry."""
        return sorted(
            name for name in self.model_fields_set
            if name in REQUIRED_NODE_FIELDS and getattr(self, name) is None
        )


class EmptySlot(BaseModel):
    """Placeholder for a free grid slot. Never persisted."""

    node_type: Literal["EMPTY"] = "EMPTY"
    id: str
    project_id: Optional[str] = None
    parent_id: Optional[str] = None
    slot_index: int
    depth: int


GridCell = Optional[Union[Node, EmptySlot]]
NineSlotView = List[GridCell]


class LogEntry(BaseModel):
    id: str
    project_id: str
    user_id: str
    user_name: str
    action: LogAction
    target_id: str
    target_name: str
    details: Optional[str] = None
    timestamp: datetime
