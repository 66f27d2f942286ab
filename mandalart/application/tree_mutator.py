"""Create, update and move operations over the node tree."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from mandalart.application.node_repository import NodeRepository
from mandalart.domain.entities import (
    CENTER_SLOT,
    CHILD_SLOTS,
    Node,
    NodeDraft,
    NodePatch,
    NodeStatus,
    NodeType,
)
from mandalart.domain.errors import InvalidMoveError, NotFoundError, SlotOccupiedError, ValidationError
from mandalart.domain.events import NodeCreated, NodeMoved, NodeUpdated, event_publisher
from mandalart.storage.interface import ProjectStore

logger = logging.getLogger(__name__)


class TreeMutator:
    """
    Validates tree mutations against the repository and writes them to the store.

    All checks run before the first write. Nothing is applied to the repository
    directly; the change shows up there with the next snapshot.
    """

    def __init__(self, project_id: str, repository: NodeRepository, store: ProjectStore) -> None:
        self.project_id = project_id
        self._repository = repository
        self._store = store

    def _require_node(self, node_id: str) -> Node:
        node = self._repository.get(node_id)
        if node is None:
            raise NotFoundError(f"Node not found: {node_id}")
        return node

    def _require_parent(self, parent_id: str) -> Node:
        parent = self._repository.get(parent_id)
        if parent is None:
            raise NotFoundError(f"Parent node not found: {parent_id}")
        if parent.node_type == NodeType.TASK:
            raise ValidationError("TASK nodes cannot have children")
        return parent

    def _check_slot(self, parent_id: Optional[str], slot_index: int, moving_id: Optional[str] = None) -> None:
        """Reject a slot outside the parent's range or already held by a sibling."""
        if parent_id is None:
            others = [n for n in self._repository.children_of(None) if n.id != moving_id]
            if others:
                raise SlotOccupiedError("Root position is already occupied")
            if slot_index != CENTER_SLOT:
                raise ValidationError(f"Root node must use slot {CENTER_SLOT}, got {slot_index}")
            return

        if slot_index not in CHILD_SLOTS:
            raise ValidationError(f"Slot index must be between 1 and 8, got {slot_index}")
        for sibling in self._repository.children_of(parent_id):
            if sibling.slot_index == slot_index and sibling.id != moving_id:
                raise SlotOccupiedError("Target slot is already occupied")

    async def create_node(self, parent_id: Optional[str], slot_index: int, data: NodeDraft) -> str:
        """
        Create a node in a free slot under parent_id.

        Args:
            parent_id: Parent node, or None to create the project's root
            slot_index: 1-8 under a parent, 0 for the root
            data: Node attributes

        Returns:
            The store-assigned id of the new node
        """
        depth = 0
        if parent_id is not None:
            depth = self._require_parent(parent_id).depth + 1
        self._check_slot(parent_id, slot_index)

        document: Dict[str, Any] = data.model_dump(exclude_none=True)
        document.update(
            project_id=self.project_id,
            parent_id=parent_id,
            slot_index=slot_index,
            depth=depth,
        )
        node_id = await self._store.create_node(self.project_id, document)
        logger.info(f"Created {data.node_type.value} node {node_id} under {parent_id} at slot {slot_index}")

        event_publisher.publish(NodeCreated(
            aggregate_id=node_id,
            project_id=self.project_id,
            parent_id=parent_id,
            slot_index=slot_index,
            title=data.title,
        ))
        return node_id

    @staticmethod
    def check_patch(patch: NodePatch) -> None:
        """Reject patches that would clear an attribute every node must have."""
        cleared = patch.cleared_required_fields()
        if cleared:
            raise ValidationError(f"Fields cannot be cleared: {', '.join(cleared)}")

    async def update_node(self, node_id: str, patch: NodePatch) -> None:
        """Shallow-merge attributes into a node; position fields are never touched."""
        node = self._require_node(node_id)
        self.check_patch(patch)
        if patch.node_type == NodeType.TASK and self._repository.children_of(node_id):
            raise ValidationError("A node with children cannot become a TASK")

        fields: Dict[str, Any] = patch.model_dump(exclude_unset=True)
        if patch.task_config is not None and "progress" not in fields:
            node_type = patch.node_type or node.node_type
            derived = patch.task_config.derived_progress()
            if node_type == NodeType.TASK and derived is not None:
                fields["progress"] = derived

        await self._store.update_node(self.project_id, node_id, fields)
        logger.info(f"Updated node {node_id}: {sorted(fields)}")

        event_publisher.publish(NodeUpdated(
            aggregate_id=node_id,
            project_id=self.project_id,
            fields=sorted(fields),
        ))

    async def increment_task_count(self, node_id: str) -> int:
        """Record one more repetition of a recurring task and return its progress."""
        node = self._require_node(node_id)
        config = node.task_config
        if node.node_type != NodeType.TASK or config is None or not config.is_recurring:
            raise ValidationError(f"Node {node_id} is not a recurring task")

        config = config.model_copy(update={"current_count": (config.current_count or 0) + 1})
        progress = config.derived_progress()
        if progress is None:
            progress = node.progress
        status = NodeStatus.DONE if progress >= 100 else node.status

        await self.update_node(node_id, NodePatch(task_config=config, progress=progress, status=status))
        return progress

    async def move_node(self, node_id: str, target_parent_id: Optional[str], target_slot_index: int) -> None:
        """
        Re-parent a node and repair the depth of its whole subtree.

        Args:
            node_id: Node to move
            target_parent_id: New parent, or None for the root position
            target_slot_index: Slot under the new parent

        Raises:
            NotFoundError: node or target parent missing
            InvalidMoveError: target parent is the node or one of its descendants
            SlotOccupiedError: target slot already holds another node
        """
        node = self._require_node(node_id)

        new_parent: Optional[Node] = None
        if target_parent_id is not None:
            if target_parent_id not in self._repository:
                raise NotFoundError(f"Parent node not found: {target_parent_id}")
            if node_id in self._repository.ancestor_ids(target_parent_id):
                raise InvalidMoveError("Cannot move node into its own descendant")
            new_parent = self._require_parent(target_parent_id)

        self._check_slot(target_parent_id, target_slot_index, moving_id=node_id)

        new_depth = new_parent.depth + 1 if new_parent is not None else 0
        delta = new_depth - node.depth

        updates: List[Tuple[str, Dict[str, Any]]] = [
            (node_id, {"parent_id": target_parent_id, "slot_index": target_slot_index, "depth": new_depth})
        ]
        if delta != 0:
            for descendant_id in self._repository.descendant_ids(node_id):
                descendant = self._repository.get(descendant_id)
                updates.append((descendant_id, {"depth": descendant.depth + delta}))

        await self._store.commit_batch(self.project_id, updates)
        logger.info(
            f"Moved node {node_id} to {target_parent_id} slot {target_slot_index} "
            f"(depth {node.depth} -> {new_depth}, {len(updates) - 1} descendant(s))"
        )

        event_publisher.publish(NodeMoved(
            aggregate_id=node_id,
            project_id=self.project_id,
            target_parent_id=target_parent_id,
            target_slot_index=target_slot_index,
            depth_delta=delta,
            descendants_updated=len(updates) - 1,
        ))
