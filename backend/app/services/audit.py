import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

ACTION_REQUESTED = "swap_requested"
ACTION_APPROVED = "swap_approved"
ACTION_REJECTED = "swap_rejected"
ACTION_DELETED = "swap_deleted"


@dataclass(frozen=True)
class AuditEvent:
    swap_id: int
    actor_id: int
    action: str
    previous_state: Optional[str]
    new_state: Optional[str]
    details: dict = field(default_factory=dict)


class AuditSink(Protocol):
    def record(self, event: AuditEvent) -> None:
        ...


class LoggingAuditSink:
    def record(self, event: AuditEvent) -> None:
        logger.info(
            "audit %s swap=%s actor=%s %s -> %s %s",
            event.action,
            event.swap_id,
            event.actor_id,
            event.previous_state,
            event.new_state,
            event.details,
        )


def emit(sink: AuditSink, event: AuditEvent) -> None:
    """Deliver an event after commit; sink failures are logged and dropped."""
    try:
        sink.record(event)
    except Exception:
        logger.exception("Audit sink failed for %s on swap %s", event.action, event.swap_id)
