"""In-memory node map for the currently subscribed project."""
from __future__ import annotations

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from mandalart.domain.entities import CHILD_SLOTS, Node, NodeStatus, NodeType
from mandalart.domain.errors import NotFoundError
from mandalart.domain.specifications import InProject, NodeOfType, NodeWithStatus, filter_by_specification


class NodeRepository:
    """
    Holds every node of one project plus a parent -> children index.

    The working set is only ever replaced wholesale from a store snapshot; no
    mutation is applied here ahead of the store confirming it. Not thread-safe:
    it expects snapshot deliveries and reads to come from one event loop.
    """

    def __init__(self) -> None:
        self._nodes_by_id: Dict[str, Node] = {}
        self._children: Dict[Optional[str], List[str]] = {}
        self._focus_id: Optional[str] = None

    def replace_all(self, nodes: Iterable[Node]) -> None:
        """Swap in a fresh snapshot and re-validate the focus."""
        nodes_by_id = {node.id: node for node in nodes}
        children: Dict[Optional[str], List[str]] = defaultdict(list)
        for node in nodes_by_id.values():
            children[node.parent_id].append(node.id)

        self._nodes_by_id = nodes_by_id
        self._children = dict(children)
        self._focus_id = self._select_focus()

    def clear(self) -> None:
        """Drop all state, used when switching projects."""
        self._nodes_by_id = {}
        self._children = {}
        self._focus_id = None

    def _select_focus(self) -> Optional[str]:
        if self._focus_id is not None and self._focus_id in self._nodes_by_id:
            return self._focus_id

        root = self.root()
        if root is not None:
            return root.id

        first_goal = next((n for n in self._nodes_by_id.values() if n.node_type == NodeType.GOAL), None)
        if first_goal is not None:
            return first_goal.id

        return next(iter(self._nodes_by_id), None)

    @property
    def focus_id(self) -> Optional[str]:
        return self._focus_id

    def set_focus(self, node_id: Optional[str]) -> None:
        if node_id is not None and node_id not in self._nodes_by_id:
            raise NotFoundError(f"Node not found: {node_id}")
        self._focus_id = node_id

    def get(self, node_id: Optional[str]) -> Optional[Node]:
        if node_id is None:
            return None
        return self._nodes_by_id.get(node_id)

    def nodes(self) -> List[Node]:
        return list(self._nodes_by_id.values())

    def __len__(self) -> int:
        return len(self._nodes_by_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes_by_id

    def root(self) -> Optional[Node]:
        """The top-level node, falling back to any node recorded at depth 0."""
        top_level = self._children.get(None, [])
        if top_level:
            return self._nodes_by_id[top_level[0]]
        return next((n for n in self._nodes_by_id.values() if n.depth == 0), None)

    def children_of(self, parent_id: Optional[str]) -> List[Node]:
        """Direct children sorted by slot."""
        children = [self._nodes_by_id[child_id] for child_id in self._children.get(parent_id, [])]
        return sorted(children, key=lambda n: n.slot_index)

    def descendant_ids(self, node_id: str) -> List[str]:
        """Every transitive descendant of a node, parents before children."""
        result: List[str] = []
        seen = {node_id}
        stack = list(reversed(self._children.get(node_id, [])))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            result.append(current)
            stack.extend(reversed(self._children.get(current, [])))
        return result

    def ancestor_ids(self, node_id: Optional[str]) -> List[str]:
        """The node itself followed by each ancestor up to the root."""
        chain: List[str] = []
        current = self.get(node_id)
        while current is not None and current.id not in chain:
            chain.append(current.id)
            current = self.get(current.parent_id)
        return chain

    def breadcrumb_path(self, node_id: Optional[str]) -> List[Node]:
        """Nodes from the root down to node_id."""
        return [self._nodes_by_id[i] for i in reversed(self.ancestor_ids(node_id))]

    def all_tasks(self, status: Optional[NodeStatus] = None) -> List[Node]:
        spec = NodeOfType(NodeType.TASK)
        if status is not None:
            spec = spec.and_(NodeWithStatus(status))
        return filter_by_specification(self.nodes(), spec)

    def overall_progress(self, project_id: str) -> int:
        """Flat average of every node's progress, unweighted by depth or subtree."""
        nodes = filter_by_specification(self.nodes(), InProject(project_id))
        if not nodes:
            return 0
        total = sum(n.progress for n in nodes)
        return math.floor(total / len(nodes) + 0.5)

    def first_empty_slot(self, parent_id: str) -> Optional[int]:
        occupied = {n.slot_index for n in self.children_of(parent_id)}
        return next((slot for slot in CHILD_SLOTS if slot not in occupied), None)
