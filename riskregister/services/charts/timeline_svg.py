# riskregister/services/charts/timeline_svg.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from jinja2 import Environment

from riskregister.config import RegisterSettings, default_settings
from riskregister.models.schemas import STATUS_ORDER
from riskregister.services.analysis.risk_timeline import Timeline
from riskregister.utils.helper import iso_date


STATUS_COLORS = ["#ef4444", "#f59e0b", "#10b981", "#3b82f6"]
GRID_SCORES = [5, 10, 15, 20, 25]
LABEL_SCORES = [0, 5, 10, 15, 20, 25]

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)

_TEMPLATE = _env.from_string(
    """<svg xmlns="http://www.w3.org/2000/svg" viewBox="-50 -10 {{ width + 70 }} {{ height + 80 }}" width="{{ width + 70 }}" height="{{ height + 80 }}" font-family="sans-serif">
{% if empty %}
  <text x="{{ width / 2 }}" y="{{ height / 2 }}" text-anchor="middle" font-size="14">No timeline: project start and end dates are required</text>
{% else %}
  <line x1="0" y1="0" x2="0" y2="{{ height }}" stroke="#000" />
  <line x1="0" y1="{{ height }}" x2="{{ width }}" y2="{{ height }}" stroke="#000" />
{% for gx in grid_x %}
  <line x1="{{ gx }}" y1="0" x2="{{ gx }}" y2="{{ height }}" stroke="#ddd" />
{% endfor %}
{% for gy in grid_y %}
  <line x1="0" y1="{{ gy }}" x2="{{ width }}" y2="{{ gy }}" stroke="#ddd" />
{% endfor %}
{% for label in y_labels %}
  <line x1="0" y1="{{ label.y }}" x2="-5" y2="{{ label.y }}" stroke="#000" />
  <text x="-8" y="{{ label.y + 4 }}" text-anchor="end" font-size="10">{{ label.text }}</text>
{% endfor %}
{% for label in x_labels %}
  <line x1="{{ label.x }}" y1="{{ height }}" x2="{{ label.x }}" y2="{{ height + 5 }}" stroke="#000" />
  <text x="{{ label.x }}" y="{{ height + 15 }}" text-anchor="middle" font-size="10">{{ label.text }}</text>
{% endfor %}
  <text x="{{ width / 2 }}" y="{{ height + 35 }}" text-anchor="middle" font-size="12" font-weight="bold">Date</text>
  <text x="-40" y="{{ height / 2 }}" text-anchor="middle" font-size="12" font-weight="bold" transform="rotate(-90 -40 {{ height / 2 }})">Risk Score</text>
{% for line in lines %}
  <polyline data-status="{{ line.status }}" fill="none" stroke="{{ line.color }}" stroke-width="2" points="{{ line.points }}" />
{% endfor %}
{% for item in legend %}
  <rect x="{{ item.x }}" y="{{ height + 50 }}" width="10" height="10" fill="{{ item.color }}" />
  <text x="{{ item.x + 14 }}" y="{{ height + 59 }}" font-size="11">{{ item.status }}</text>
{% endfor %}
{% endif %}
</svg>
"""
)


def _fmt(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def render_timeline_svg(
    timeline: Timeline, settings: Optional[RegisterSettings] = None
) -> str:
    """Render a :class:`Timeline` as a standalone SVG document."""
    settings = settings or default_settings()
    height = settings.chart_height
    width = max(settings.chart_min_width, len(timeline.ticks) * settings.chart_tick_width)

    if timeline.is_empty:
        return _TEMPLATE.render(empty=True, width=width, height=height)

    start, end = timeline.start, timeline.end
    span = (end - start).total_seconds()

    def x(when: datetime) -> float:
        return (when - start).total_seconds() / span * width

    def y(score: float) -> float:
        return height - (score / settings.max_score) * height

    lines: List[dict] = []
    for idx, status in enumerate(STATUS_ORDER):
        values = timeline.series.get(status, [])
        points = " ".join(
            f"{_fmt(x(t))},{_fmt(y(v))}" for t, v in zip(timeline.ticks, values)
        )
        lines.append(
            {"status": status.value, "color": STATUS_COLORS[idx], "points": points}
        )

    return _TEMPLATE.render(
        empty=False,
        width=width,
        height=height,
        grid_x=[_fmt(x(t)) for t in timeline.ticks[1:]],
        grid_y=[_fmt(y(s)) for s in GRID_SCORES],
        y_labels=[{"y": y(s), "text": s} for s in LABEL_SCORES],
        x_labels=[{"x": _fmt(x(t)), "text": iso_date(t)} for t in timeline.ticks],
        lines=lines,
        legend=[
            {"x": i * 110, "status": s.value, "color": STATUS_COLORS[i]}
            for i, s in enumerate(STATUS_ORDER)
        ],
    )
