"""Audit store boundary."""
from abc import ABC, abstractmethod
from typing import Any

from healthsync_compliance.audit.models import AuditLogEntry, AuditQuery


class AuditStore(ABC):
    """
    Append-only audit persistence.
    
    Implementations receive entries in serialized (JSON-compatible)
    form and must return them with retention metadata intact.
    """
    
    @abstractmethod
    async def append(self, entry: dict[str, Any]) -> None:
        """Persist a serialized entry."""
    
    @abstractmethod
    async def query(self, query: AuditQuery) -> list[dict[str, Any]]:
        """Serialized entries matching the query, oldest first."""


class InMemoryAuditStore(AuditStore):
    """In-memory audit store for development and tests."""
    
    def __init__(self):
        self._entries: dict[str, dict[str, Any]] = {}
    
    async def append(self, entry: dict[str, Any]) -> None:
        entry_id = entry["id"]
        if entry_id in self._entries:
            raise ValueError(f"Audit entry {entry_id} already exists and cannot be overwritten")
        self._entries[entry_id] = dict(entry)
    
    async def query(self, query: AuditQuery) -> list[dict[str, Any]]:
        entries = [AuditLogEntry.model_validate(e) for e in self._entries.values()]
        results = sorted(
            (e for e in entries if query.matches(e)),
            key=lambda e: e.timestamp,
        )
        if query.limit is not None:
            results = results[:query.limit]
        return [e.model_dump(mode="json") for e in results]
    
    def __len__(self) -> int:
        return len(self._entries)
