"""Audit log for every pipeline decision and side-effect attempt.

Rows go to the webhook_logs collection. The sink is for forensics only: a failed
write is logged and never changes the outcome of the pipeline.
"""

import json
from typing import Any

from reconciler.core.exceptions import StoreError
from reconciler.core.logging import get_logger
from reconciler.db.store import RecordStore
from reconciler.models.webhook_log import WebhookLog

log = get_logger("reconciler.audit")


def _encode(payload: Any) -> str:
    return json.dumps(payload, default=str, ensure_ascii=False)


class AuditLog:
    def __init__(self, store: RecordStore, direction: str = "incoming"):
        self._store = store
        self._direction = direction

    async def log_event(
        self,
        event: str,
        payload: dict[str, Any] | None = None,
        processed: bool = False,
        gateway_id: str | None = None,
    ) -> None:
        """Append one row; mirror it to the structured log."""
        payload = payload or {}
        if "error" in event:
            log.error(event, processed=processed, data=payload)
        elif "warning" in event or event.endswith("_failed"):
            log.warning(event, processed=processed, data=payload)
        else:
            log.info(event, processed=processed, data=payload)

        encoded = _encode(payload)
        row = WebhookLog(
            gateway_id=gateway_id,
            direction=self._direction,
            event=event,
            payload=encoded,
            raw_data=encoded,
            processed=processed,
        )
        try:
            await self._store.insert(WebhookLog, row.model_dump())
        except StoreError as e:
            log.warning("audit_write_failed", audit_event=event, reason=e.message)
