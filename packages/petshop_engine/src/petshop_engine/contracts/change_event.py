"""
Change event - notification that a row in a watched table changed.

Published to a Redis stream after a repository commit. Consumers only need
the table name to decide what to refetch; the record id is informational.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from petcore.clock import utcnow

from petshop_engine.contracts.types import ChangeType


@dataclass
class ChangeEvent:
    table: str
    event_type: ChangeType
    tenant_id: UUID
    record_id: UUID | None = None
    occurred_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChangeEvent":
        """Create a ChangeEvent from stream fields (all strings)."""
        record_id = data.get("record_id")
        occurred_at = data.get("occurred_at")
        return cls(
            table=data["table"],
            event_type=ChangeType(data["event_type"]),
            tenant_id=UUID(str(data["tenant_id"])),
            record_id=UUID(str(record_id)) if record_id else None,
            occurred_at=datetime.fromisoformat(occurred_at) if isinstance(occurred_at, str) else (occurred_at or utcnow()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "event_type": self.event_type.value,
            "tenant_id": str(self.tenant_id),
            "record_id": str(self.record_id) if self.record_id else None,
            "occurred_at": self.occurred_at.isoformat(),
        }
