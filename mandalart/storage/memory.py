from __future__ import annotations

import copy
import itertools
import logging
import threading
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Tuple

from pydantic import ValidationError as PydanticValidationError

from mandalart.domain.changes import ApprovalRequest
from mandalart.domain.entities import ApprovalStatus, LogEntry, Node
from mandalart.domain.errors import RemoteFailureError
from mandalart.domain.specifications import RequestWithStatus, filter_by_specification
from mandalart.storage.interface import ProjectStore, Unsubscribe

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryProjectStore(ProjectStore):
    """
    Implements the project store in process memory.

    Every project is a set of three collections (nodes, logs, approvals). One
    lock guards all of them; listeners are notified after the lock is released
    with freshly built snapshots.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._seq = itertools.count()
        self._nodes: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self._logs: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self._requests: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self._node_listeners: Dict[str, List[Callable]] = defaultdict(list)
        self._log_listeners: Dict[str, List[Callable]] = defaultdict(list)
        self._request_listeners: Dict[str, List[Callable]] = defaultdict(list)

    # Feeds

    def subscribe_nodes(self, project_id: str, listener: Callable[[List[Node]], None]) -> Unsubscribe:
        return self._subscribe(self._node_listeners, project_id, listener, self._node_snapshot)

    def subscribe_logs(self, project_id: str, listener: Callable[[List[LogEntry]], None]) -> Unsubscribe:
        return self._subscribe(self._log_listeners, project_id, listener, self._log_snapshot)

    def subscribe_requests(
        self, project_id: str, listener: Callable[[List[ApprovalRequest]], None]
    ) -> Unsubscribe:
        return self._subscribe(self._request_listeners, project_id, listener, self._request_snapshot)

    def _subscribe(self, registry, project_id, listener, snapshot) -> Unsubscribe:
        with self._lock:
            registry[project_id].append(listener)
            initial = snapshot(project_id)
        listener(initial)

        def unsubscribe() -> None:
            with self._lock:
                if listener in registry[project_id]:
                    registry[project_id].remove(listener)

        return unsubscribe

    def _node_snapshot(self, project_id: str) -> List[Node]:
        return [Node.model_validate(copy.deepcopy(doc)) for doc in self._nodes[project_id].values()]

    def _log_snapshot(self, project_id: str) -> List[LogEntry]:
        ordered = sorted(self._logs[project_id], key=lambda doc: (doc["timestamp"], doc["_seq"]), reverse=True)
        return [LogEntry.model_validate({k: v for k, v in doc.items() if k != "_seq"}) for doc in ordered]

    def _request_snapshot(self, project_id: str) -> List[ApprovalRequest]:
        requests = [ApprovalRequest.model_validate(copy.deepcopy(doc)) for doc in self._requests[project_id].values()]
        return filter_by_specification(requests, RequestWithStatus(ApprovalStatus.PENDING))

    def _notify(self, registry, project_id: str, snapshot) -> None:
        with self._lock:
            listeners = list(registry[project_id])
            data = snapshot(project_id) if listeners else None
        for listener in listeners:
            try:
                listener(data)
            except Exception:
                # A broken listener must not turn a committed write into a failure
                logger.exception("Snapshot listener failed for project %s", project_id)

    # Node writes

    async def create_node(self, project_id: str, document: Dict[str, Any]) -> str:
        node_id = str(uuid.uuid4())
        now = _utcnow()
        doc = {**copy.deepcopy(document), "id": node_id, "project_id": project_id,
               "created_at": now, "updated_at": now}
        self._check_node(doc)
        with self._lock:
            self._nodes[project_id][node_id] = doc
        logger.debug("Stored node %s in project %s", node_id, project_id)
        self._notify(self._node_listeners, project_id, self._node_snapshot)
        return node_id

    async def update_node(self, project_id: str, node_id: str, fields: Dict[str, Any]) -> None:
        await self.commit_batch(project_id, [(node_id, fields)])

    async def commit_batch(self, project_id: str, updates: List[Tuple[str, Dict[str, Any]]]) -> None:
        now = _utcnow()
        with self._lock:
            collection = self._nodes[project_id]
            merged: Dict[str, Dict[str, Any]] = {}
            for node_id, fields in updates:
                base = merged.get(node_id) or collection.get(node_id)
                if base is None:
                    raise RemoteFailureError(f"No node document to update: {node_id}")
                doc = {**base, **copy.deepcopy(fields), "updated_at": now}
                self._check_node(doc)
                merged[node_id] = doc
            collection.update(merged)
        logger.debug("Committed %d node update(s) in project %s", len(updates), project_id)
        self._notify(self._node_listeners, project_id, self._node_snapshot)

    @staticmethod
    def _check_node(doc: Dict[str, Any]) -> None:
        try:
            Node.model_validate(doc)
        except PydanticValidationError as e:
            raise RemoteFailureError(f"Node document rejected: {e}") from e

    # Audit and approval writes

    async def add_log(self, project_id: str, document: Dict[str, Any]) -> str:
        log_id = str(uuid.uuid4())
        doc = {**copy.deepcopy(document), "id": log_id, "project_id": project_id, "timestamp": _utcnow()}
        try:
            LogEntry.model_validate(doc)
        except PydanticValidationError as e:
            raise RemoteFailureError(f"Log document rejected: {e}") from e
        with self._lock:
            doc["_seq"] = next(self._seq)
            self._logs[project_id].append(doc)
        self._notify(self._log_listeners, project_id, self._log_snapshot)
        return log_id

    async def add_request(self, project_id: str, document: Dict[str, Any]) -> str:
        request_id = str(uuid.uuid4())
        doc = {"status": ApprovalStatus.PENDING, **copy.deepcopy(document), "id": request_id,
               "project_id": project_id, "created_at": _utcnow()}
        self._check_request(doc)
        with self._lock:
            self._requests[project_id][request_id] = doc
        self._notify(self._request_listeners, project_id, self._request_snapshot)
        return request_id

    async def update_request(self, project_id: str, request_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            base = self._requests[project_id].get(request_id)
            if base is None:
                raise RemoteFailureError(f"No approval document to update: {request_id}")
            doc = {**base, **copy.deepcopy(fields), "updated_at": _utcnow()}
            self._check_request(doc)
            self._requests[project_id][request_id] = doc
        self._notify(self._request_listeners, project_id, self._request_snapshot)

    @staticmethod
    def _check_request(doc: Dict[str, Any]) -> None:
        try:
            ApprovalRequest.model_validate(doc)
        except PydanticValidationError as e:
            raise RemoteFailureError(f"Approval document rejected: {e}") from e

    async def get_request(self, project_id: str, request_id: str) -> ApprovalRequest | None:
        with self._lock:
            doc = self._requests[project_id].get(request_id)
            if doc is None:
                return None
            return ApprovalRequest.model_validate(copy.deepcopy(doc))

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            projects = set(self._nodes) | set(self._logs) | set(self._requests)
            return {
                "storage_type": "memory",
                "projects": len(projects),
                "nodes": sum(len(nodes) for nodes in self._nodes.values()),
                "logs": sum(len(logs) for logs in self._logs.values()),
                "approvals": sum(len(reqs) for reqs in self._requests.values()),
            }
