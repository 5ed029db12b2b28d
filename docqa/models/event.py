"""Document lifecycle events consumed from Kafka."""

import time
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

UPSERT_OPS = ("c", "u", "r")


class DocumentEvent(BaseModel):
    """A document was uploaded, replaced, re-read by a snapshot, or deleted."""

    op: str
    document_id: int
    ts_ms: Optional[int] = None

    @property
    def is_delete(self) -> bool:
        return self.op == "d"

    @property
    def is_upsert(self) -> bool:
        return self.op in UPSERT_OPS

    @classmethod
    def from_payload(cls, data: dict) -> Optional["DocumentEvent"]:
        """
        Build an event from any of the accepted payload shapes.

        Accepted shapes are plain events ({"op", "document_id"}), flattened
        CDC rows ({"__op", "id", "__deleted"}) and CDC envelopes with
        "before"/"after" row images.

        Args:
            data: Event body.

        Returns:
            Event, or None when no document id can be found.
        """
        if "after" in data or "before" in data:
            row = data.get("after") or data.get("before") or {}
            op = data.get("op", "c")
            document_id = row.get("id")
            ts_ms = data.get("ts_ms") or (data.get("source") or {}).get("ts_ms")
        else:
            op = data.get("__op") or data.get("op", "c")
            document_id = data.get("document_id", data.get("id"))
            ts_ms = data.get("__source_ts_ms") or data.get("ts_ms")
            if data.get("__deleted") == "true":
                op = "d"

        if document_id is None:
            return None
        return cls(op=op, document_id=int(document_id), ts_ms=ts_ms)

    def get_timestamp(self) -> datetime:
        """Time the change happened at the source, or now if unknown."""
        return datetime.fromtimestamp((self.ts_ms or time.time() * 1000) / 1000)
