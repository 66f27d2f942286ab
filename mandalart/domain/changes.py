"""Change intents: the mutations a user can request, as a tagged union."""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field

from .entities import ApprovalStatus, LogAction, NodeDraft, NodePatch


class CreateNodeChange(BaseModel):
    action: Literal["CREATE_NODE"] = "CREATE_NODE"
    parent_id: Optional[str] = None
    slot_index: int = Field(ge=0, le=8)
    data: NodeDraft = Field(default_factory=NodeDraft)


class UpdateNodeChange(BaseModel):
    action: Literal["UPDATE_NODE"] = "UPDATE_NODE"
    node_id: str
    data: NodePatch


class MoveNodeChange(BaseModel):
    action: Literal["MOVE_NODE"] = "MOVE_NODE"
    node_id: str
    target_parent_id: Optional[str] = None
    target_slot_index: int = Field(ge=0, le=8)


NodeChange = Annotated[
    Union[CreateNodeChange, UpdateNodeChange, MoveNodeChange],
    Field(discriminator="action"),
]


def dump_change(change: Union[CreateNodeChange, UpdateNodeChange, MoveNodeChange]) -> Dict[str, Any]:
    """Serialize a change for storage, keeping only the fields the caller set.

    Patches rely on the difference between "not given" and "cleared", so unset
    fields must not come back as explicit ``None`` after a round trip.
    """
    payload = change.model_dump(exclude_unset=True)
    payload["action"] = change.action
    return payload


def change_log_action(change: Union[CreateNodeChange, UpdateNodeChange, MoveNodeChange]) -> LogAction:
    return LogAction(change.action)


class ApprovalRequest(BaseModel):
    """A deferred change waiting for an owner's decision."""

    id: str
    project_id: str
    user_id: str
    user_name: str
    action: LogAction
    payload: NodeChange
    details: Optional[str] = None
    status: ApprovalStatus = ApprovalStatus.PENDING
    created_at: datetime
    updated_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING
