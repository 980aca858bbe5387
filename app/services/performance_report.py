"""
Performance report aggregation and plain-text export.

Flow:
- build_report_data(): reviews of one employee for one period -> ReportData
- render_report(): ReportData -> fixed-layout text document
- export_report(): ReportData -> ReportExport (filename + UTF-8 text), served as a download
"""
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Protocol, Sequence
from urllib.parse import quote

from app.core.exceptions import ReportNotFoundError
from app.schemas.performance import ReportData

FILENAME_PREFIX = "performance_report"
MAX_LISTED_ITEMS = 5
MEDIA_TYPE = "text/plain"


class Evaluation(Protocol):
    overall_score: float
    goals_achieved: int
    total_goals: int
    achievements: Optional[str]
    areas_for_improvement: Optional[str]


@dataclass(frozen=True)
class ReportExport:
    filename: str
    content: str
    media_type: str = MEDIA_TYPE

    @property
    def body(self) -> bytes:
        return self.content.encode("utf-8")


def _round_half_up(value: float, places: int = 0) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)


def _split_unique(values: Iterable[Optional[str]], limit: int = MAX_LISTED_ITEMS) -> List[str]:
    """Comma-separated entries, trimmed, first occurrence wins."""
    seen = {}
    for value in values:
        if not value:
            continue
        for item in value.split(","):
            item = item.strip()
            if item:
                seen.setdefault(item, None)
    return list(seen)[:limit]


def build_report_data(employee: str, period: str, evaluations: Sequence[Evaluation]) -> ReportData:
    if not evaluations:
        raise ReportNotFoundError()

    average = sum(e.overall_score for e in evaluations) / len(evaluations)
    achieved = sum(e.goals_achieved or 0 for e in evaluations)
    total = sum(e.total_goals or 0 for e in evaluations)
    rate = int(_round_half_up(achieved / total * 100)) if total else 0

    return ReportData(
        employee=employee,
        period=period,
        evaluations=len(evaluations),
        average_score=float(_round_half_up(average, 1)),
        goal_achievement_rate=rate,
        top_strengths=_split_unique(e.achievements for e in evaluations),
        improvement_areas=_split_unique(e.areas_for_improvement for e in evaluations),
    )


def format_generated_on(day: date) -> str:
    return day.strftime("%m/%d/%Y")


def render_report(report: ReportData, generated_on: date) -> str:
    lines = [
        "Performance Report",
        "==================",
        "",
        f"Employee: {report.employee}",
        f"Review Period: {report.period}",
        f"Total Evaluations: {report.evaluations}",
        f"Average Score: {report.average_score:.1f}/5",
        f"Goal Achievement Rate: {report.goal_achievement_rate}%",
        "",
        "Top Strengths:",
        *(f"- {strength}" for strength in report.top_strengths),
        "",
        "Areas for Improvement:",
        *(f"- {area}" for area in report.improvement_areas),
        "",
        f"Generated on: {format_generated_on(generated_on)}",
    ]
    return "\n".join(lines) + "\n"


def report_filename(employee: str, now: datetime) -> str:
    name = re.sub(r"\s+", "_", employee)
    epoch_ms = int(now.timestamp() * 1000)
    return f"{FILENAME_PREFIX}_{name}_{epoch_ms}.txt"


def export_report(report: ReportData, now: Optional[datetime] = None) -> ReportExport:
    now = now or datetime.now().astimezone()
    return ReportExport(
        filename=report_filename(report.employee, now),
        content=render_report(report, now.date()),
    )


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and the RFC 5987 UTF-8 name."""
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_").replace('"', "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"
