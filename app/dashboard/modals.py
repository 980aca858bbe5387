"""
Modal state for the performance dashboard.

The dashboard keeps a set of named modals, at most one of which is normally
visible. Raw UI events (clicks, key presses) are translated by
DashboardContext into calls on the DashboardEvents it owns.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional, Protocol

from app.schemas.performance import ReportData
from app.services import performance_report
from app.services.performance_report import ReportExport

logger = logging.getLogger(__name__)

BACKDROP_CLASS = "modal"
ESCAPE_KEY = "Escape"

PERFORMANCE_MODALS = (
    "evaluation-modal",
    "goal-modal",
    "review-cycle-modal",
    "performance-details-modal",
    "performance-report-modal",
)


@dataclass
class Modal:
    id: str
    visible: bool = False


class ModalRegistry:
    def __init__(self, modal_ids: Iterable[str] = ()):
        self._modals: Dict[str, Modal] = {}
        for modal_id in modal_ids:
            self.register(modal_id)

    def register(self, modal_id: str) -> Modal:
        return self._modals.setdefault(modal_id, Modal(modal_id))

    def get(self, modal_id: str) -> Optional[Modal]:
        return self._modals.get(modal_id)

    def __contains__(self, modal_id: str) -> bool:
        return modal_id in self._modals

    def open(self, modal_id: str) -> bool:
        modal = self.get(modal_id)
        if modal is None:
            return False
        modal.visible = True
        return True

    def close(self, modal_id: str) -> bool:
        modal = self.get(modal_id)
        if modal is None:
            return False
        modal.visible = False
        return True

    def visible(self) -> Optional[Modal]:
        """First currently visible modal, in registration order."""
        return next((m for m in self._modals.values() if m.visible), None)

    @property
    def any_open(self) -> bool:
        return self.visible() is not None


class DashboardEvents(Protocol):
    registry: ModalRegistry

    def on_modal_close(self, modal_id: str) -> None: ...

    def on_export_requested(self, report: ReportData) -> ReportExport: ...


class PerformanceManager:
    """Owns the performance page modals and the report export action."""

    def __init__(
        self,
        registry: Optional[ModalRegistry] = None,
        clock: Callable[[], datetime] = lambda: datetime.now().astimezone(),
    ):
        self.registry = registry if registry is not None else ModalRegistry(PERFORMANCE_MODALS)
        self.clock = clock
        self.last_export: Optional[ReportExport] = None

    def open_modal(self, modal_id: str) -> None:
        if not self.registry.open(modal_id):
            logger.warning(f"Unknown modal: {modal_id}")

    def on_modal_close(self, modal_id: str) -> None:
        if self.registry.close(modal_id):
            logger.debug(f"Closed modal {modal_id}")

    def on_export_requested(self, report: ReportData) -> ReportExport:
        export = performance_report.export_report(report, now=self.clock())
        self.last_export = export
        logger.info(f"Exported performance report {export.filename}")
        return export


class DashboardContext:
    """
    Entry point for dashboard UI events.

    The context builds its own PerformanceManager; there is no module level
    instance for handlers to reach for.
    """

    def __init__(self, events: Optional[DashboardEvents] = None):
        self.events = events if events is not None else PerformanceManager()

    @property
    def registry(self) -> ModalRegistry:
        return self.events.registry

    def handle_click(self, target_id: Optional[str], target_classes: Iterable[str] = ()) -> bool:
        """A click on a modal backdrop (the modal element itself) closes that modal."""
        if not target_id or BACKDROP_CLASS not in set(target_classes):
            return False
        self.events.on_modal_close(target_id)
        return True

    def handle_keydown(self, key: str) -> bool:
        if key != ESCAPE_KEY:
            return False
        modal = self.registry.visible()
        if modal is None:
            return False
        self.events.on_modal_close(modal.id)
        return True

    def export_report(self, report: ReportData) -> ReportExport:
        return self.events.on_export_requested(report)
