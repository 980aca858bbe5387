from datetime import datetime, timezone

import pytest

from app.dashboard.modals import DashboardContext, ModalRegistry, PerformanceManager
from app.schemas.performance import ReportData


@pytest.fixture
def context():
    return DashboardContext()


def open_ids(registry):
    return [modal_id for modal_id in ("evaluation-modal", "goal-modal", "performance-report-modal")
            if registry.get(modal_id).visible]


def test_context_owns_its_manager():
    first, second = DashboardContext(), DashboardContext()
    assert isinstance(first.events, PerformanceManager)
    assert first.events is not second.events


def test_escape_closes_visible_modal(context):
    context.events.open_modal("goal-modal")
    assert context.handle_keydown("Escape") is True
    assert context.registry.visible() is None


def test_escape_closes_exactly_one_modal(context):
    context.events.open_modal("evaluation-modal")
    context.events.open_modal("performance-report-modal")
    context.handle_keydown("Escape")
    assert open_ids(context.registry) == ["performance-report-modal"]


def test_escape_without_open_modal_is_noop(context):
    assert context.handle_keydown("Escape") is False


def test_other_keys_ignored(context):
    context.events.open_modal("goal-modal")
    assert context.handle_keydown("Enter") is False
    assert context.registry.get("goal-modal").visible


def test_backdrop_click_closes_that_modal(context):
    context.events.open_modal("evaluation-modal")
    assert context.handle_click("evaluation-modal", ["modal"]) is True
    assert not context.registry.get("evaluation-modal").visible


def test_click_inside_modal_content_keeps_it_open(context):
    context.events.open_modal("evaluation-modal")
    assert context.handle_click("evaluation-form", ["modal-content"]) is False
    assert context.registry.get("evaluation-modal").visible


def test_unknown_modal_is_ignored():
    registry = ModalRegistry(["goal-modal"])
    assert registry.open("missing") is False
    assert registry.close("missing") is False
    assert "goal-modal" in registry
    assert not registry.any_open


def test_export_through_context():
    now = datetime(2024, 4, 2, 9, 30, tzinfo=timezone.utc)
    manager = PerformanceManager(clock=lambda: now)
    context = DashboardContext(manager)
    report = ReportData(
        employee="Jane Doe", period="2024-Q1", evaluations=1,
        average_score=4.0, goal_achievement_rate=100,
    )
    export = context.export_report(report)
    assert export.filename == "performance_report_Jane_Doe_1712050200000.txt"
    assert manager.last_export is export
    assert "Average Score: 4.0/5" in export.content


class RecordingEvents:
    def __init__(self):
        self.registry = ModalRegistry(["a", "b"])
        self.closed = []

    def on_modal_close(self, modal_id):
        self.closed.append(modal_id)

    def on_export_requested(self, report):
        raise AssertionError("not expected")


def test_context_dispatches_named_callbacks():
    events = RecordingEvents()
    context = DashboardContext(events)
    events.registry.open("b")
    context.handle_keydown("Escape")
    context.handle_click("a", ("modal", "fade"))
    assert events.closed == ["b", "a"]
