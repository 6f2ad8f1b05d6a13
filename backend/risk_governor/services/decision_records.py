from __future__ import annotations

import json
import logging
import queue
import threading
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Protocol
from uuid import uuid4

from sqlalchemy.orm import Session

from risk_governor.core.config import get_settings
from risk_governor.db.session import SessionLocal
from risk_governor.models import DecisionRecord
from risk_governor.schemas.risk import Verdict
from risk_governor.services.riskgate.context import EvaluationContext

logger = logging.getLogger(__name__)

_STOP = object()


def _json_dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), sort_keys=True, default=str)


@dataclass(frozen=True)
class DecisionEvent:
    decision_id: str
    workspace_id: Optional[str]
    verdict: Verdict
    context: Dict[str, Any]
    timestamp: datetime


def new_decision_event(verdict: Verdict, ctx: EvaluationContext) -> DecisionEvent:
    return DecisionEvent(
        decision_id=uuid4().hex,
        workspace_id=ctx.workspace_id,
        verdict=verdict,
        context=ctx.to_audit_dict(),
        timestamp=datetime.now(UTC),
    )


class DecisionRecorder(Protocol):
    def append(self, event: DecisionEvent) -> None: ...


class SqlDecisionRecorder:
    """Appends decision events to the decision_records table."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self.session_factory = session_factory

    def append(self, event: DecisionEvent) -> None:
        order = event.context.get("order") or {}
        verdict = event.verdict
        with self.session_factory() as db:
            db.add(
                DecisionRecord(
                    decision_id=event.decision_id,
                    workspace_id=event.workspace_id,
                    symbol=str(order.get("symbol") or ""),
                    side=str(order.get("side") or ""),
                    quantity=int(order.get("quantity") or 0),
                    allowed=verdict.allowed,
                    risk_level=verdict.risk_level.value,
                    risk_score=float(verdict.risk_score),
                    violation_codes=",".join(verdict.violation_codes)[:255],
                    verdict_json=_json_dumps(verdict.model_dump(mode="json")),
                    context_json=_json_dumps(event.context),
                    created_at=event.timestamp,
                )
            )
            db.commit()


class DecisionRecordEmitter:
    """Fire-and-forget delivery of decision events to a recorder.

    emit() never blocks and never raises. A daemon worker delivers events in
    order; a failed append is retried once after retry_delay_sec and then
    dropped.
    """

    def __init__(
        self,
        recorder: DecisionRecorder,
        *,
        queue_size: int = 1000,
        retry_delay_sec: float = 0.5,
        name: str = "decision-records",
    ) -> None:
        self.recorder = recorder
        self.retry_delay_sec = float(retry_delay_sec)
        self.name = name
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=max(1, int(queue_size)))
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self.recorded = 0
        self.dropped = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _ensure_started(self) -> None:
        with self._lock:
            if self.running:
                return
            self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
            self._thread.start()

    def _count(self, *, recorded: int = 0, dropped: int = 0) -> None:
        with self._lock:
            self.recorded += recorded
            self.dropped += dropped

    def emit(self, verdict: Verdict, ctx: EvaluationContext) -> None:
        try:
            event = new_decision_event(verdict, ctx)
        except Exception:
            logger.exception("Failed to format decision record; dropping it.")
            self._count(dropped=1)
            return

        self._ensure_started()
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self._count(dropped=1)
            logger.warning(
                "Decision record queue full; dropping record",
                extra={"extra": {"decision_id": event.decision_id, "workspace_id": event.workspace_id}},
            )

    def _deliver(self, event: DecisionEvent) -> None:
        fields = {"decision_id": event.decision_id, "workspace_id": event.workspace_id}
        try:
            self.recorder.append(event)
        except Exception:
            logger.warning(
                "Decision record append failed; retrying once",
                exc_info=True,
                extra={"extra": fields},
            )
        else:
            self._count(recorded=1)
            return

        if self.retry_delay_sec > 0:
            time.sleep(self.retry_delay_sec)
        try:
            self.recorder.append(event)
        except Exception:
            self._count(dropped=1)
            logger.exception("Decision record dropped after retry", extra={"extra": fields})
        else:
            self._count(recorded=1)

    def _loop(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._deliver(item)
            finally:
                self._queue.task_done()

    def flush(self) -> None:
        """Block until every queued event has been delivered or dropped."""

        if self.running:
            self._queue.join()

    def stop(self, timeout: float = 5.0) -> None:
        thread = self._thread
        if thread is None or not thread.is_alive():
            return
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("Decision record queue still full at shutdown; abandoning worker.")
            return
        thread.join(timeout=timeout)


@lru_cache
def get_decision_emitter() -> Optional[DecisionRecordEmitter]:
    """Return the process-wide emitter, or None when auditing is disabled."""

    settings = get_settings()
    if not settings.audit_enabled:
        return None
    return DecisionRecordEmitter(
        SqlDecisionRecorder(),
        queue_size=settings.audit_queue_size,
        retry_delay_sec=settings.audit_retry_delay_sec,
    )


__all__ = [
    "DecisionEvent",
    "DecisionRecorder",
    "DecisionRecordEmitter",
    "SqlDecisionRecorder",
    "get_decision_emitter",
    "new_decision_event",
]
