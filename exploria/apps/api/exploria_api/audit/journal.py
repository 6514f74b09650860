"""Auth event journal (auth_history).

Every login/logout/registration attempt is appended here, success or not.

Semantics:
  - Writes use their own short-lived session, so a rolled-back request
    transaction never removes a journal row and a failed journal write never
    rolls back the request.
  - record() never raises. Persistence failures are logged as
    "auth_journal.write_failed" and reported through the return value only.
  - Only the account reference (user_refid or firebase_uid) and auth_type
    are mandatory; all device/network metadata is optional.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exploria_api.accounts.errors import AccountFlowError
from exploria_api.accounts.refids import generate_auth_refid
from exploria_api.context import request_id_var
from exploria_api.db.models import AuthHistory

logger = logging.getLogger(__name__)

# Fresh auth_refid attempts when the insert collides on an existing one
MAX_WRITE_ATTEMPTS = 3

# device_info keys copied onto the journal row
_DEVICE_FIELDS: tuple[str, ...] = (
    "device_type",
    "device_model",
    "device_name",
    "os_name",
    "os_version",
    "browser_name",
    "browser_version",
    "app_version",
)


@dataclass
class AuthEvent:
    """One authentication event, immutable once written."""

    auth_type: str
    user_refid: Optional[str] = None
    firebase_uid: Optional[str] = None
    auth_method: Optional[str] = None
    auth_status: str = "success"
    failure_reason: Optional[str] = None
    portal_type: Optional[str] = None
    device_info: dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    is_new_device: bool = False

    def has_account_reference(self) -> bool:
        return bool(self.user_refid or self.firebase_uid)

    def fail(self, reason: str) -> None:
        self.auth_status = "failed"
        self.failure_reason = reason


@dataclass
class ClientContext:
    """Network/device metadata of the calling client."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_info: dict[str, Any] = field(default_factory=dict)

    @property
    def device_type(self) -> str:
        return str(self.device_info.get("device_type") or "web")

    def event(self, auth_type: str, **fields: Any) -> AuthEvent:
        return AuthEvent(
            auth_type=auth_type,
            device_info=dict(self.device_info),
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            **fields,
        )


class AuthJournal:
    """Best-effort writer for auth_history rows."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def record(self, event: AuthEvent) -> bool:
        """Append an event. Returns True if the row was committed.

        A collision on the generated auth_refid is retried with a fresh one.
        """
        if not event.auth_type or not event.has_account_reference():
            logger.warning(
                "auth_journal.event_rejected",
                extra={
                    "auth_type": event.auth_type,
                    "reason": "missing account reference or auth_type",
                },
            )
            return False

        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            try:
                row = self._build_row(event)
            except Exception as exc:
                logger.error(
                    "auth_journal.write_failed",
                    extra={"auth_type": event.auth_type, "error": str(exc)},
                )
                return False

            # Rows expire on commit and detach on close
            auth_refid = row.auth_refid
            session: Optional[Session] = None
            try:
                session = self._session_factory()
                session.add(row)
                session.commit()
            except IntegrityError as exc:
                _rollback_quietly(session)
                if attempt < MAX_WRITE_ATTEMPTS:
                    logger.warning(
                        "auth_journal.refid_collision",
                        extra={"auth_refid": auth_refid, "attempt": attempt},
                    )
                    continue
                _log_write_failed(event, auth_refid, exc)
                return False
            except Exception as exc:
                _rollback_quietly(session)
                _log_write_failed(event, auth_refid, exc)
                return False
            finally:
                if session is not None:
                    session.close()

            logger.info(
                "auth_journal.recorded",
                extra={
                    "auth_refid": auth_refid,
                    "auth_type": event.auth_type,
                    "auth_status": event.auth_status,
                    "portal_type": event.portal_type,
                },
            )
            return True

        return False

    @contextmanager
    def attempt(self, event: AuthEvent, db: Optional[Session] = None) -> Iterator[AuthEvent]:
        """Record exactly one event for the wrapped flow, whatever its outcome.

        The body fills in the event (e.g. user_refid once the account is
        resolved). Business failures mark it failed with the error reason,
        anything else with "unexpected_error". The request session is rolled
        back before the journal write so the journal never commits pending
        request work, and the original exception always propagates.
        """
        try:
            yield event
        except AccountFlowError as exc:
            event.fail(exc.reason)
            if db is not None:
                db.rollback()
            raise
        except Exception:
            event.fail("unexpected_error")
            if db is not None:
                db.rollback()
            raise
        finally:
            self.record(event)

    @staticmethod
    def _build_row(event: AuthEvent) -> AuthHistory:
        device = event.device_info or {}
        now = datetime.now(timezone.utc)
        return AuthHistory(
            id=str(uuid.uuid4()),
            auth_refid=generate_auth_refid(now),
            user_refid=event.user_refid,
            firebase_uid=event.firebase_uid,
            auth_type=event.auth_type,
            auth_method=event.auth_method,
            auth_status=event.auth_status,
            failure_reason=event.failure_reason,
            portal_type=event.portal_type,
            ip_address=event.ip_address,
            user_agent=event.user_agent,
            is_new_device=event.is_new_device,
            request_id=request_id_var.get() or None,
            auth_timestamp=now,
            **{name: device.get(name) for name in _DEVICE_FIELDS},
        )


def _rollback_quietly(session: Optional[Session]) -> None:
    if session is None:
        return
    try:
        session.rollback()
    except Exception:
        logger.debug("auth_journal.rollback_failed", exc_info=True)


def _log_write_failed(event: AuthEvent, auth_refid: str, exc: Exception) -> None:
    logger.error(
        "auth_journal.write_failed",
        extra={
            "auth_refid": auth_refid,
            "auth_type": event.auth_type,
            "auth_status": event.auth_status,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
    )
