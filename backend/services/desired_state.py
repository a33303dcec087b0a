from datetime import datetime, timezone
from typing import Any, Dict, Optional

from models.actions import DesiredState


class DesiredStateStore:
    """
    Last requested action per service id, kept in memory for the process
    lifetime. Each set() replaces the whole entry, so the last write wins and
    no history is kept.
    """

    def __init__(self):
        self._entries: Dict[str, DesiredState] = {}

    def get(self, service_id: str) -> Optional[DesiredState]:
        return self._entries.get(service_id)

    def set(self, service_id: str, state: str, meta: Optional[Dict[str, Any]] = None) -> DesiredState:
        entry = DesiredState(
            state=state,
            updated_at=datetime.now(timezone.utc),
            meta=dict(meta or {}),
        )
        self._entries[service_id] = entry
        return entry
