from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskdesk.db import SessionLocal
from taskdesk.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class AuditEvent:
    action: str
    resource_id: str | None
    caller_id: uuid.UUID | None
    allowed: bool
    reason: str | None = None
    department: str | None = None

class AuditSink(Protocol):
    def record(self, event: AuditEvent) -> None: ...

class DbAuditSink:
    """
    Writes decisions to audit_logs in a session of its own.

    Never raises: a failed write is logged and dropped, the access
    decision stands either way.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def record(self, event: AuditEvent) -> None:
        try:
            with self._session_factory() as db:
                db.add(
                    AuditLog(
                        action=event.action,
                        resource_id=event.resource_id,
                        caller_id=event.caller_id,
                        allowed=event.allowed,
                        reason=event.reason,
                        department=event.department,
                    )
                )
                db.commit()
        except SQLAlchemyError as e:
            logger.warning("audit write failed for %s: %s", event.action, e.__class__.__name__)
        except Exception:
            # fire-and-forget
            logger.exception("audit sink error for %s", event.action)

def get_audit_sink() -> AuditSink:
    return DbAuditSink()
