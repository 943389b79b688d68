import re
import logging
from typing import Any, Callable, Dict, Optional

from firebase_admin import db

logger = logging.getLogger(__name__)

# Firebase keys may not contain . $ # [ ] and path segments may not be empty.
_PATH_RE = re.compile(r"^[^.$#\[\]/]{1,768}(/[^.$#\[\]/]{1,768})*$")


def _ensure_valid_path(path: str) -> str:
    if not path or not _PATH_RE.match(path):
        raise ValueError(f"Invalid database path: {path!r}")
    return path


def child_path(*parts: str) -> str:
    return _ensure_valid_path("/".join(p.strip("/") for p in parts))


class RealtimeStore:
    """
    Realtime Database access used by the services.

    Every method maps to one SDK call, so a FirebaseError raised by the SDK
    reaches the caller untouched.
    """

    def _ref(self, path: str) -> db.Reference:
        return db.reference(_ensure_valid_path(path))

    def get(self, path: str) -> Any:
        """One-shot read; returns None when the node does not exist."""
        return self._ref(path).get()

    def set(self, path: str, data: Dict[str, Any]) -> None:
        self._ref(path).set(data)

    def update(self, path: str, fields: Dict[str, Any]) -> None:
        """Partial update. Keys may be nested paths such as 'payment/registrationFee'."""
        for key in fields:
            _ensure_valid_path(key)
        self._ref(path).update(fields)

    def delete(self, path: str) -> None:
        self._ref(path).delete()

    def listen(self, path: str, callback: Callable[[Optional[Dict[str, Any]]], None]) -> "db.ListenerRegistration":
        """
        Subscribe to a subtree and hand the callback the FULL mapping on every change.

        The SDK streams deltas: the first 'put' at '/' carries the whole subtree,
        later events only the changed child. For anything other than a root
        'put' the subtree is re-read so callers always see a complete snapshot.
        """
        ref = self._ref(path)

        def _on_event(event: db.Event) -> None:
            if event.event_type == "put" and event.path == "/":
                data = event.data
            else:
                try:
                    data = ref.get()
                except Exception as e:
                    # skipped; the next event re-reads the whole subtree
                    logger.error(f"Re-reading '{path}' after '{event.event_type}' at '{event.path}' failed: {e}")
                    return
            try:
                callback(data)
            except Exception as e:
                logger.error(f"Snapshot callback failed for '{path}': {e}")

        logger.info(f"👂 Listening on '{path}'")
        return ref.listen(_on_event)
