"""Specification pattern for reusable query logic over nodes and requests."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List

from .entities import ApprovalStatus, NodeStatus, NodeType


class Specification(ABC):
    """Abstract base for specifications (query filters)."""

    @abstractmethod
    def is_satisfied_by(self, candidate: Any) -> bool:
        """Check if candidate satisfies this specification."""
        pass

    def and_(self, other: Specification) -> Specification:
        """Combine with AND logic."""
        return AndSpecification(self, other)


class AndSpecification(Specification):
    """AND composite specification."""

    def __init__(self, left: Specification, right: Specification):
        self.left = left
        self.right = right

    def is_satisfied_by(self, candidate: Any) -> bool:
        return self.left.is_satisfied_by(candidate) and self.right.is_satisfied_by(candidate)


# Node Specifications

class NodeOfType(Specification):
    """Nodes of a given type (GOAL or TASK)."""

    def __init__(self, node_type: NodeType):
        self.node_type = node_type

    def is_satisfied_by(self, node: Any) -> bool:
        return getattr(node, "node_type", None) == self.node_type


class NodeWithStatus(Specification):
    """Nodes in a given workflow status."""

    def __init__(self, status: NodeStatus):
        self.status = status

    def is_satisfied_by(self, node: Any) -> bool:
        return getattr(node, "status", None) == self.status


class InProject(Specification):
    """Nodes, log entries or requests belonging to a project."""

    def __init__(self, project_id: str):
        self.project_id = project_id

    def is_satisfied_by(self, candidate: Any) -> bool:
        return getattr(candidate, "project_id", None) == self.project_id


# Approval Specifications

class RequestWithStatus(Specification):
    """Approval requests in a given state."""

    def __init__(self, status: ApprovalStatus):
        self.status = status

    def is_satisfied_by(self, request: Any) -> bool:
        return getattr(request, "status", None) == self.status


# Helper function to filter collections

def filter_by_specification(items: List[Any], spec: Specification) -> List[Any]:
    """Filter a collection using a specification."""
    return [item for item in items if spec.is_satisfied_by(item)]
