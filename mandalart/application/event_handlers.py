"""Event handlers for domain events."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mandalart.domain.events import (
        NodeCreated,
        NodeUpdated,
        NodeMoved,
        ChangeRequested,
        ChangeApproved,
        ChangeRejected,
    )

logger = logging.getLogger(__name__)


class AuditLogHandler:
    """Writes every domain event to the application log."""

    def handle_node_created(self, event: NodeCreated) -> None:
        logger.info(f"[AUDIT] Node created: {event.aggregate_id} - {event.title} "
                    f"(parent {event.parent_id}, slot {event.slot_index})")

    def handle_node_updated(self, event: NodeUpdated) -> None:
        logger.info(f"[AUDIT] Node updated: {event.aggregate_id} fields={event.fields}")

    def handle_node_moved(self, event: NodeMoved) -> None:
        logger.info(f"[AUDIT] Node moved: {event.aggregate_id} -> {event.target_parent_id}"
                    f"/{event.target_slot_index} (depth {event.depth_delta:+d}, "
                    f"{event.descendants_updated} descendant(s))")

    def handle_change_requested(self, event: ChangeRequested) -> None:
        logger.info(f"[AUDIT] Change requested: {event.action} by {event.user_name} ({event.aggregate_id})")

    def handle_change_approved(self, event: ChangeApproved) -> None:
        logger.info(f"[AUDIT] Change approved: {event.aggregate_id} by {event.approver}")

    def handle_change_rejected(self, event: ChangeRejected) -> None:
        logger.info(f"[AUDIT] Change rejected: {event.aggregate_id} by {event.approver}")


class NotificationHandler:
    """Tells owners about work waiting for them."""

    def handle_change_requested(self, event: ChangeRequested) -> None:
        # In a real deployment this would reach the owner by email or push
        logger.info(f"[NOTIFICATION] {event.user_name} asks to apply {event.action} "
                    f"in project {event.project_id}")


def register_event_handlers():
    """Register all event handlers with the publisher."""
    from mandalart.domain.events import (
        event_publisher,
        NodeCreated,
        NodeUpdated,
        NodeMoved,
        ChangeRequested,
        ChangeApproved,
        ChangeRejected,
    )

    # Registration runs on every app startup; start from a clean slate
    event_publisher.clear_subscribers()

    audit = AuditLogHandler()
    notification = NotificationHandler()

    # Audit handlers (all events)
    event_publisher.subscribe(NodeCreated, audit.handle_node_created)
    event_publisher.subscribe(NodeUpdated, audit.handle_node_updated)
    event_publisher.subscribe(NodeMoved, audit.handle_node_moved)
    event_publisher.subscribe(ChangeRequested, audit.handle_change_requested)
    event_publisher.subscribe(ChangeApproved, audit.handle_change_approved)
    event_publisher.subscribe(ChangeRejected, audit.handle_change_rejected)

    # Notifications
    event_publisher.subscribe(ChangeRequested, notification.handle_change_requested)
