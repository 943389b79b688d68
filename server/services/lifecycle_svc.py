import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from core.config import settings
from dtos.application_dtos import Application, ApplicationStatus, StatusCounts, PAID
from services.event_manager import (
    EventManager,
    event_bus,
    APPLICATION_APPROVED,
    APPLICATION_REJECTED,
    APPLICATION_DELETED,
    PAYMENT_MARKED_PAID,
)
from services.rtdb_svc import child_path

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("firstName", "lastName", "email", "studentCode")
FALLBACK_ADMIN_ID = "admin"


# ==================== Errors ====================

class LifecycleError(Exception):
    """Base class for rejected or failed application actions."""


class ApplicationNotFound(LifecycleError):
    def __init__(self, app_id: str):
        super().__init__(f"Application '{app_id}' not found")
        self.app_id = app_id


class InvalidTransition(LifecycleError):
    pass


class ConfirmationRequired(LifecycleError):
    pass


class StoreWriteError(LifecycleError):
    pass


# ==================== Pure helpers ====================

def utc_now_iso(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC with milliseconds and a 'Z' suffix, the format the portal writes."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def matches_search(app: Union[Application, Dict[str, Any]], search_term: str) -> bool:
    """Case-insensitive substring match on name, email or student code. Missing fields never match."""
    if not search_term:
        return True
    needle = search_term.lower()
    for field in SEARCH_FIELDS:
        value = app.get(field) if isinstance(app, dict) else getattr(app, field, None)
        if value is None:
            continue
        if needle in str(value).lower():
            return True
    return False


def filter_applications(
    applications: Iterable[Application],
    active_tab: Union[str, ApplicationStatus],
    search_term: str = "",
) -> List[Application]:
    status = ApplicationStatus(active_tab).value
    return [
        app for app in applications
        if app.status == status and matches_search(app, search_term)
    ]


def count_by_status(applications: List[Application]) -> StatusCounts:
    counts = StatusCounts(total=len(applications))
    for app in applications:
        if app.status == ApplicationStatus.PENDING.value:
            counts.pending += 1
        elif app.status == ApplicationStatus.APPROVED.value:
            counts.approved += 1
        elif app.status == ApplicationStatus.REJECTED.value:
            counts.rejected += 1
    return counts


def parse_snapshot(snapshot: Optional[Dict[str, Any]]) -> List[Application]:
    """Turn a Realtime Database mapping {id: record} into Application models, keeping store order."""
    if not snapshot:
        return []
    applications = []
    for app_id, record in snapshot.items():
        if not isinstance(record, dict):
            logger.warning(f"Skipping application '{app_id}': record is not an object")
            continue
        try:
            applications.append(Application.from_record(str(app_id), record))
        except ValidationError as e:
            logger.warning(f"Skipping application '{app_id}': {e.error_count()} invalid field(s)")
    return applications


# ==================== Lifecycle Manager ====================

class ApplicationLifecycleManager:
    """
    Mirror of the pending-applications tree plus the status transitions on it.

    The mirror is only ever replaced by ingest(); transitions write to the
    store and wait for it to re-emit. Snapshots arrive on the Firebase
    listener thread, hence the lock.
    """

    def __init__(
        self,
        store,
        base_path: str = settings.APPLICATIONS_PATH,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        events: EventManager = event_bus,
    ):
        self._store = store
        self._base_path = base_path
        self._clock = clock
        self._events = events
        self._lock = threading.Lock()
        self._applications: List[Application] = []
        self._loaded = False
        self._listeners: List[Callable[[], None]] = []
        self._registration = None

    # ---------- Subscription ----------

    def start(self):
        """Subscribe to the store; every notification is ingested as the full state."""
        if self._registration is None:
            self._registration = self._store.listen(self._base_path, self.ingest)

    def stop(self):
        if self._registration is not None:
            self._registration.close()
            self._registration = None

    def add_listener(self, listener: Callable[[], None]):
        """Called (without arguments) after every ingest."""
        self._listeners.append(listener)

    def ingest(self, snapshot: Optional[Dict[str, Any]]):
        applications = parse_snapshot(snapshot)
        with self._lock:
            self._applications = applications
            self._loaded = True
        logger.info(f"📥 Ingested {len(applications)} application(s)")

        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Snapshot listener {getattr(listener, '__name__', listener)} failed: {e}")

    # ---------- Reads ----------

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def applications(self) -> List[Application]:
        with self._lock:
            return list(self._applications)

    def get(self, app_id: str) -> Optional[Application]:
        for app in self.applications:
            if app.id == app_id:
                return app
        return None

    def counts_by_status(self) -> StatusCounts:
        return count_by_status(self.applications)

    def filter(self, active_tab: Union[str, ApplicationStatus], search_term: str = "") -> List[Application]:
        return filter_applications(self.applications, active_tab, search_term)

    # ---------- Transitions ----------

    def _require(self, app_id: str) -> Application:
        app = self.get(app_id)
        if app is None:
            raise ApplicationNotFound(app_id)
        return app

    def _require_pending(self, app_id: str, action: str) -> Application:
        app = self._require(app_id)
        if app.status != ApplicationStatus.PENDING.value:
            raise InvalidTransition(f"Cannot {action} application '{app_id}': status is already '{app.status}'")
        return app

    async def _run(self, action: str, app_id: str, func: Callable, *args):
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, func, *args)
        except Exception as e:
            logger.error(f"Error {action} application {app_id}: {e}")
            raise StoreWriteError(f"Error {action} application: {e}") from e

    async def _transition(self, app_id: str, status: ApplicationStatus, date_field: str, verb: str, action: str, event: str):
        self._require_pending(app_id, verb)
        now = utc_now_iso(self._clock())
        updates = {
            "status": status.value,
            date_field: now,
            "lastUpdated": now,
        }
        await self._run(action, app_id, self._store.update, child_path(self._base_path, app_id), updates)
        logger.info(f"✅ Application {app_id} {status.value}")
        await self._events.emit(event, {"id": app_id, **updates})
        return updates

    async def approve(self, app_id: str) -> Dict[str, Any]:
        return await self._transition(app_id, ApplicationStatus.APPROVED, "approvedDate", "approve", "approving", APPLICATION_APPROVED)

    async def reject(self, app_id: str) -> Dict[str, Any]:
        return await self._transition(app_id, ApplicationStatus.REJECTED, "rejectedDate", "reject", "rejecting", APPLICATION_REJECTED)

    async def delete(self, app_id: str, confirmed: bool = False) -> None:
        if not confirmed:
            raise ConfirmationRequired(f"Deleting application '{app_id}' must be confirmed")
        self._require(app_id)
        await self._run("deleting", app_id, self._store.delete, child_path(self._base_path, app_id))
        logger.info(f"🗑️ Application {app_id} deleted")
        await self._events.emit(APPLICATION_DELETED, {"id": app_id})

    async def mark_paid(self, app_id: str, acting_admin_id: Optional[str] = None) -> Dict[str, Any]:
        app = self._require(app_id)
        if app.status != ApplicationStatus.APPROVED.value:
            raise InvalidTransition(f"Payment can only be approved for approved applications (status is '{app.status}')")
        if app.is_paid:
            raise InvalidTransition(f"Registration fee for application '{app_id}' is already paid")

        updates = {
            "payment/registrationFee": PAID,
            "payment/registrationFeeDate": utc_now_iso(self._clock()),
            "payment/approvedBy": acting_admin_id or FALLBACK_ADMIN_ID,
        }
        await self._run("approving payment for", app_id, self._store.update, child_path(self._base_path, app_id), updates)
        logger.info(f"💳 Payment marked as PAID for application {app_id}")
        await self._events.emit(PAYMENT_MARKED_PAID, {"id": app_id, **updates})
        return updates


# ==================== Audit ====================

async def log_transition(payload: dict):
    logger.info(f"📝 Audit: {payload}")


for _event in (APPLICATION_APPROVED, APPLICATION_REJECTED, APPLICATION_DELETED, PAYMENT_MARKED_PAID):
    event_bus.subscribe(_event, log_transition)
