"""Domain events for decoupled side effects and integrations."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for all domain events."""
    aggregate_id: str
    event_id: str = field(default="", kw_only=True)
    timestamp: Optional[datetime] = field(default=None, kw_only=True)

    def __post_init__(self):
        if not self.event_id:
            self.event_id = str(uuid4())
        if not self.timestamp:
            self.timestamp = datetime.now()


@dataclass
class NodeCreated(DomainEvent):
    """Raised when a node is written to the project store."""
    project_id: str
    parent_id: Optional[str]
    slot_index: int
    title: str


@dataclass
class NodeUpdated(DomainEvent):
    """Raised when node attributes are merged."""
    project_id: str
    fields: List[str]


@dataclass
class NodeMoved(DomainEvent):
    """Raised when a node and its subtree are re-parented."""
    project_id: str
    target_parent_id: Optional[str]
    target_slot_index: int
    depth_delta: int
    descendants_updated: int


@dataclass
class ChangeRequested(DomainEvent):
    """Raised when a change is queued for approval."""
    project_id: str
    action: str
    user_name: str


@dataclass
class ChangeApproved(DomainEvent):
    """Raised when a queued change has been executed and approved."""
    project_id: str
    action: str
    approver: str


@dataclass
class ChangeRejected(DomainEvent):
    """Raised when a queued change is turned down."""
    project_id: str
    action: str
    approver: str


class DomainEventPublisher:
    """Singleton publisher for domain events."""

    _instance: DomainEventPublisher | None = None
    _subscribers: Dict[type, List[Callable[[DomainEvent], None]]]

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._subscribers = {}
        return cls._instance

    def subscribe(self, event_type: type[DomainEvent], handler: Callable[[DomainEvent], None]) -> None:
        """Subscribe a handler to an event type."""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers."""
        event_type = type(event)
        if event_type in self._subscribers:
            for handler in self._subscribers[event_type]:
                try:
                    handler(event)
                except Exception:
                    # Side effects never fail the mutation that raised the event
                    logger.exception("Event handler error for %s", event_type.__name__)

    def clear_subscribers(self) -> None:
        """Clear all subscribers (useful for testing)."""
        self._subscribers = {}


# Singleton instance
event_publisher = DomainEventPublisher()
