"""
Risk history timeline.

Reconstructs, for every status and every tick of a resampled date axis
between the project start and end dates, the mean score of the risks that
were active and held that status at the tick.  The status of a risk at a
past tick is read back from its status history rather than taken from its
current status.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from riskregister.config import RegisterSettings, default_settings
from riskregister.models.schemas import STATUS_ORDER, ProjectMeta, Risk, RiskStatus
from riskregister.utils.helper import iso_date, parse_timestamp


STEP_DELTAS = {
    "week": relativedelta(weeks=1),
    "month": relativedelta(months=1),
    "year": relativedelta(years=1),
}


@dataclass(frozen=True)
class Timeline:
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    step: Optional[str] = None
    ticks: List[datetime] = field(default_factory=list)
    series: Dict[RiskStatus, List[float]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.ticks

    def to_wire(self) -> Dict[str, Any]:
        return {
            "start": iso_date(self.start),
            "end": iso_date(self.end),
            "step": self.step,
            "dates": [iso_date(t) for t in self.ticks],
            "series": [
                {
                    "status": status.value,
                    "values": [round(v, 2) for v in self.series.get(status, [])],
                }
                for status in STATUS_ORDER
            ]
            if self.ticks
            else [],
        }


def choose_step(span_days: float, settings: Optional[RegisterSettings] = None) -> str:
    settings = settings or default_settings()
    if span_days <= settings.weekly_max_days:
        return "week"
    if span_days <= settings.monthly_max_days:
        return "month"
    return "year"


def date_axis(start: datetime, end: datetime, step: str) -> List[datetime]:
    """Ticks ``start + k*step`` while ``<= end``.

    Each tick is computed from ``start`` (not from the previous tick), so a
    start on the 31st clamps to shorter months without drifting.
    """
    delta = STEP_DELTAS[step]
    ticks: List[datetime] = []
    k = 0
    while True:
        tick = start + delta * k
        if tick > end:
            break
        ticks.append(tick)
        k += 1
    return ticks


def is_active(risk: Risk, when: datetime) -> bool:
    if risk.date_identified is None or risk.date_identified > when:
        return False
    return risk.date_resolved is None or risk.date_resolved >= when


def status_at(risk: Risk, when: datetime) -> RiskStatus:
    """Status held by ``risk`` at ``when`` according to its history.

    Before the first recorded transition the first entry's status applies;
    a risk without history keeps its current status.
    """
    history = risk.status_history
    if not history:
        return risk.status
    current = history[0].status
    for change in history:
        if change.date > when:
            break
        current = change.status
    return current


def build_timeline(
    risks: Sequence[Risk],
    meta: ProjectMeta,
    settings: Optional[RegisterSettings] = None,
) -> Timeline:
    start = parse_timestamp(meta.start_date)
    end = parse_timestamp(meta.end_date)
    if start is None or end is None or end <= start:
        return Timeline(start=start, end=end)

    span_days = (end - start).total_seconds() / 86400
    step = choose_step(span_days, settings)
    ticks = date_axis(start, end, step)

    series: Dict[RiskStatus, List[float]] = {s: [] for s in STATUS_ORDER}
    for tick in ticks:
        buckets: Dict[RiskStatus, List[int]] = {s: [] for s in STATUS_ORDER}
        for risk in risks:
            if is_active(risk, tick):
                buckets[status_at(risk, tick)].append(risk.score)
        for status, scores in buckets.items():
            series[status].append(sum(scores) / len(scores) if scores else 0.0)

    return Timeline(start=start, end=end, step=step, ticks=ticks, series=series)
