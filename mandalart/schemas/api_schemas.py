"""
API Request/Response Schemas using Pydantic.

Structure of HTTP requests and responses for the Mandalart API. Domain
entities (nodes, log entries, approval requests) are returned as-is.
"""
from pydantic import BaseModel, Field
from typing import List, Optional, Union

from mandalart.domain.changes import NodeChange
from mandalart.domain.entities import ApprovalStatus, EmptySlot, Node

# Grid schemas
class GridResponse(BaseModel):
    focus_id: Optional[str] = Field(None, description="Node shown in the center cell")
    cells: List[Optional[Union[Node, EmptySlot]]] = Field(..., description="Nine cells; 0 is the focus, 1-8 surround it")

class FocusUpdate(BaseModel):
    node_id: Optional[str] = Field(None, description="Node to zoom into, null to clear the focus")

class FirstEmptySlotResponse(BaseModel):
    parent_id: str = Field(..., description="ID of the parent node")
    slot_index: Optional[int] = Field(None, description="Lowest free slot 1-8, null when the grid is full")

class ProgressResponse(BaseModel):
    project_id: str = Field(..., description="ID of the project")
    overall_progress: int = Field(..., description="Unweighted average progress of all nodes")
    node_count: int = Field(..., description="Number of nodes averaged")
    task_count: int = Field(..., description="Number of TASK nodes")

# Change schemas
class ChangeSubmission(BaseModel):
    change: NodeChange = Field(..., description="The mutation to apply, tagged by action")
    is_team: bool = Field(False, description="Whether the project runs in TEAM mode")
    is_owner: bool = Field(True, description="Whether the acting user owns the project")

class ChangeResponse(BaseModel):
    applied: bool = Field(..., description="True when executed directly, False when queued for approval")
    node_id: Optional[str] = Field(None, description="Node created or changed by a direct change")
    request_id: Optional[str] = Field(None, description="Approval request created for a queued change")

class TaskCountResponse(BaseModel):
    node_id: str = Field(..., description="ID of the recurring task")
    progress: int = Field(..., description="Progress after the increment")

# Approval schemas
class ApprovalDecisionResponse(BaseModel):
    request_id: str = Field(..., description="ID of the resolved request")
    status: ApprovalStatus = Field(..., description="Terminal status of the request")
    node_id: Optional[str] = Field(None, description="Node affected by an approved change")
