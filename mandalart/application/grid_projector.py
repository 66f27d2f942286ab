"""Projection of a focus node into its 3x3 grid."""
from __future__ import annotations

from typing import Optional

from mandalart.application.node_repository import NodeRepository
from mandalart.domain.entities import CENTER_SLOT, CHILD_SLOTS, EmptySlot, NineSlotView


class GridProjector:
    """Builds the nine-cell view around a focus node.

    Cell 0 is the focus itself; cells 1-8 are its children or placeholders.
    The projection reads the repository only and can be recomputed at will.
    """

    def __init__(self, repository: NodeRepository) -> None:
        self._repository = repository

    def project(self, focus_id: Optional[str]) -> NineSlotView:
        focus = self._repository.get(focus_id)
        view: NineSlotView = [None] * (len(CHILD_SLOTS) + 1)
        view[CENTER_SLOT] = focus

        by_slot = {}
        if focus is not None:
            by_slot = {child.slot_index: child for child in self._repository.children_of(focus.id)}

        child_depth = focus.depth + 1 if focus is not None else 0
        for slot in CHILD_SLOTS:
            view[slot] = by_slot.get(slot) or EmptySlot(
                id=f"virtual-empty-{focus_id}-{slot}",
                project_id=focus.project_id if focus is not None else None,
                parent_id=focus_id,
                slot_index=slot,
                depth=child_depth,
            )
        return view
