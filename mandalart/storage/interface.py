from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from mandalart.domain.changes import ApprovalRequest
from mandalart.domain.entities import LogEntry, Node

Unsubscribe = Callable[[], None]


class ProjectStore(ABC):
    """
    Abstract interface for the persisted project store.

    Writes are awaited and either complete or raise RemoteFailureError. Feeds
    deliver full snapshots (never deltas): once on subscription and again after
    every change, until the returned callable is invoked.
    """

    @abstractmethod
    def subscribe_nodes(self, project_id: str, listener: Callable[[List[Node]], None]) -> Unsubscribe:
        """
        Stream every node currently in the project.

        Args:
            project_id: Project whose nodes are watched
            listener: Called with the complete node list

        Returns:
            Callable that cancels the feed
        """
        pass

    @abstractmethod
    def subscribe_logs(self, project_id: str, listener: Callable[[List[LogEntry]], None]) -> Unsubscribe:
        """Stream the audit log ordered by timestamp, newest first."""
        pass

    @abstractmethod
    def subscribe_requests(
        self, project_id: str, listener: Callable[[List[ApprovalRequest]], None]
    ) -> Unsubscribe:
        """Stream the approval requests that are still PENDING."""
        pass

    @abstractmethod
    async def create_node(self, project_id: str, document: Dict[str, Any]) -> str:
        """
        Write a new node document.

        Args:
            project_id: Owning project
            document: Node attributes without id or timestamps

        Returns:
            Server-assigned node id
        """
        pass

    @abstractmethod
    async def update_node(self, project_id: str, node_id: str, fields: Dict[str, Any]) -> None:
        """Merge fields into an existing node and stamp updated_at."""
        pass

    @abstractmethod
    async def commit_batch(self, project_id: str, updates: List[Tuple[str, Dict[str, Any]]]) -> None:
        """
        Apply several node merges as one all-or-nothing unit.

        Args:
            project_id: Owning project
            updates: (node_id, fields) pairs
        """
        pass

    @abstractmethod
    async def add_log(self, project_id: str, document: Dict[str, Any]) -> str:
        """Append an audit log entry; the store assigns id and timestamp."""
        pass

    @abstractmethod
    async def add_request(self, project_id: str, document: Dict[str, Any]) -> str:
        """Write a new approval request; the store assigns id and created_at."""
        pass

    @abstractmethod
    async def update_request(self, project_id: str, request_id: str, fields: Dict[str, Any]) -> None:
        """Merge fields into an approval request and stamp updated_at."""
        pass

    @abstractmethod
    async def get_request(self, project_id: str, request_id: str) -> Optional[ApprovalRequest]:
        """Read one approval request in any status; resolved ones leave the feed but stay readable."""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Counts used by the health endpoint."""
        pass
