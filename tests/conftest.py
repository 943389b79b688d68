"""
Shared fixtures: an in-memory stand-in for the Realtime Database that
re-emits the full subtree to listeners after every write, like Firebase does.
"""
import copy
from datetime import datetime, timezone

import pytest

from services.event_manager import EventManager
from services.lifecycle_svc import ApplicationLifecycleManager

FIXED_NOW = datetime(2025, 1, 15, 9, 30, 0, tzinfo=timezone.utc)
FIXED_NOW_ISO = "2025-01-15T09:30:00.000Z"


class FakeRegistration:
    def __init__(self, store, path, callback):
        self.store = store
        self.entry = (path, callback)

    def close(self):
        if self.entry in self.store.listeners:
            self.store.listeners.remove(self.entry)


class FakeStore:
    def __init__(self, data=None):
        self.data = copy.deepcopy(data or {})
        self.listeners = []
        self.writes = []
        self.fail_writes = False

    # ---------- tree helpers ----------

    def _node(self, path, create=False):
        node = self.data
        for part in path.split("/"):
            if not isinstance(node, dict):
                return None
            if part not in node:
                if not create:
                    return None
                node[part] = {}
            node = node[part]
        return node

    def _check(self):
        if self.fail_writes:
            raise RuntimeError("Firebase unavailable")

    def _notify(self):
        for path, callback in list(self.listeners):
            callback(self.get(path))

    # ---------- store API ----------

    def get(self, path):
        return copy.deepcopy(self._node(path))

    def set(self, path, data):
        self._check()
        parent, _, key = path.rpartition("/")
        node = self._node(parent, create=True) if parent else self.data
        node[key] = copy.deepcopy(data)
        self.writes.append(("set", path, data))
        self._notify()

    def update(self, path, fields):
        self._check()
        node = self._node(path, create=True)
        for key, value in fields.items():
            target = node
            parts = key.split("/")
            for part in parts[:-1]:
                target = target.setdefault(part, {})
            target[parts[-1]] = value
        self.writes.append(("update", path, dict(fields)))
        self._notify()

    def delete(self, path):
        self._check()
        parent, _, key = path.rpartition("/")
        node = self._node(parent) if parent else self.data
        if isinstance(node, dict):
            node.pop(key, None)
        self.writes.append(("delete", path, None))
        self._notify()

    def listen(self, path, callback):
        entry = (path, callback)
        self.listeners.append(entry)
        callback(self.get(path))
        return FakeRegistration(self, path, callback)


def sample_applications():
    return {
        "a1": {
            "firstName": "Jane",
            "lastName": "Doe",
            "email": "jane@example.com",
            "studentCode": "STU001",
            "status": "pending",
            "applicationDate": "2025-01-10T08:00:00.000Z",
            "address": {"line1": "12 Main Rd", "city": "Mbombela", "province": "Mpumalanga"},
            "highestGrade": "Grade 11",
        },
        "a2": {
            "firstName": "Bob",
            "lastName": "Smith",
            "email": "bsmith@example.com",
            "studentCode": "STU002",
            "status": "approved",
            "approvedDate": "2025-01-11T08:00:00.000Z",
        },
        "a3": {
            "firstName": "Alice",
            "lastName": "Bobson",
            "email": "alice@example.com",
            "studentCode": "STU003",
            "status": "approved",
            "payment": {"registrationFee": "paid", "registrationFeeDate": "2025-01-12T08:00:00.000Z"},
        },
        "a4": {
            "firstName": "Carl",
            "lastName": "Jones",
            "email": "carl@example.com",
            "studentCode": "BOB-9",
            "status": "rejected",
        },
        "a5": {
            "firstName": "Dana",
            "lastName": "White",
            "status": "pending",
        },
    }


@pytest.fixture
def store():
    return FakeStore({"application": {"pending": sample_applications()}})


@pytest.fixture
def events():
    return EventManager()


@pytest.fixture
def manager(store, events):
    mgr = ApplicationLifecycleManager(store, "application/pending", clock=lambda: FIXED_NOW, events=events)
    mgr.start()
    return mgr
