"""Append-only activity log of a project."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from mandalart.domain.entities import Actor, LogAction, LogEntry
from mandalart.storage.interface import ProjectStore

logger = logging.getLogger(__name__)


class AuditTrail:
    """Writes log entries to the store and keeps the latest log feed."""

    def __init__(self, project_id: str, store: ProjectStore) -> None:
        self.project_id = project_id
        self._store = store
        self._logs: List[LogEntry] = []

    def replace_all(self, logs: Iterable[LogEntry]) -> None:
        self._logs = list(logs)

    def clear(self) -> None:
        self._logs = []

    @property
    def logs(self) -> List[LogEntry]:
        """Entries newest first, as delivered by the log feed."""
        return list(self._logs)

    async def record(
        self,
        actor: Actor,
        action: LogAction,
        target_id: str,
        target_name: str,
        details: Optional[str] = None,
    ) -> str:
        document = {
            "user_id": actor.user_id,
            "user_name": actor.user_name,
            "action": action,
            "target_id": target_id,
            "target_name": target_name,
        }
        if details is not None:
            document["details"] = details
        log_id = await self._store.add_log(self.project_id, document)
        logger.info(f"[LOG] {action.value} {target_name} ({target_id}) by {actor.user_name}")
        return log_id
