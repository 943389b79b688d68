from typing import Any, Dict, Optional

from dtos.application_dtos import ApplicationStatus
from services.lifecycle_svc import ApplicationLifecycleManager


def empty_message(tab: ApplicationStatus) -> str:
    if tab == ApplicationStatus.PENDING:
        return "No pending applications to review."
    return f"No {tab.value} applications found."


class DashboardView:
    """UI state of one connected dashboard: selected tab, search box and open detail panel."""

    def __init__(self, manager: ApplicationLifecycleManager):
        self.manager = manager
        self.active_tab = ApplicationStatus.PENDING
        self.search_term = ""
        self.selected_id: Optional[str] = None

    def set_tab(self, tab: str):
        self.active_tab = ApplicationStatus(tab)

    def set_search(self, term: Optional[str]):
        if term is not None and not isinstance(term, str):
            raise ValueError(f"search must be a string, got {type(term).__name__}")
        self.search_term = term or ""

    def select(self, app_id: str):
        if self.manager.get(app_id) is None:
            raise KeyError(app_id)
        self.selected_id = app_id

    def close(self):
        self.selected_id = None

    def close_if(self, app_id: Optional[str]):
        """Close the detail panel when the action targeted the open application."""
        if app_id is not None and app_id == self.selected_id:
            self.selected_id = None

    def handle_message(self, message: Dict[str, Any]):
        """Apply a client message such as {"tab": "approved"} or {"select": "<id>"}."""
        if "tab" in message:
            self.set_tab(message["tab"])
        if "search" in message:
            self.set_search(message["search"])
        if "select" in message:
            self.select(message["select"])
        if message.get("close"):
            self.close()

    def render(self) -> Dict[str, Any]:
        selected = None
        if self.selected_id is not None:
            selected = self.manager.get(self.selected_id)
            if selected is None:
                # record vanished from the latest snapshot
                self.selected_id = None

        applications = self.manager.filter(self.active_tab, self.search_term)
        return {
            "loading": not self.manager.loaded,
            "tab": self.active_tab.value,
            "search": self.search_term,
            "counts": self.manager.counts_by_status().model_dump(),
            "applications": [app.model_dump(exclude_none=True) for app in applications],
            "empty_message": None if applications else empty_message(self.active_tab),
            "selected": selected.model_dump(exclude_none=True) if selected else None,
        }
