"""
Risk matrix and aggregated score.

Risks are bucketed into a 5×5 grid keyed by ``probability → impact``.
Every cell exists even when empty, so callers can render the full grid
without guarding against missing keys.  The same scoring rules drive
the severity band used by the matrix cells, the risk rows and the
aggregated project score.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from riskregister.config import RegisterSettings, default_settings
from riskregister.models.schemas import Project, Risk, severity_band
from riskregister.utils.helper import iso_date


SCALE = range(1, 6)

Matrix = Dict[int, Dict[int, List[Risk]]]
Cell = Tuple[int, int]


def clamp_level(value: Any) -> int:
    """Paksa nilai probability/impact ke rentang 1–5 (non-numerik → 1)."""
    try:
        level = int(float(value))
    except (TypeError, ValueError):
        return 1
    return min(max(level, SCALE.start), SCALE.stop - 1)


def build_matrix(risks: Iterable[Risk]) -> Matrix:
    matrix: Matrix = {p: {i: [] for i in SCALE} for p in SCALE}
    for risk in risks:
        matrix[clamp_level(risk.probability)][clamp_level(risk.impact)].append(risk)
    return matrix


def matrix_counts(
    matrix: Matrix, settings: Optional[RegisterSettings] = None
) -> List[List[Dict[str, Any]]]:
    """Rows ordered impact 5→1, columns probability 1→5."""
    rows: List[List[Dict[str, Any]]] = []
    for impact in reversed(SCALE):
        row = []
        for prob in SCALE:
            items = matrix[prob][impact]
            score = prob * impact
            row.append(
                {
                    "probability": prob,
                    "impact": impact,
                    "score": score,
                    "severity": severity_band(score, settings),
                    "count": len(items),
                    "riskIds": [r.id for r in items],
                }
            )
        rows.append(row)
    return rows


def aggregated_score(risks: Sequence[Risk]) -> float:
    if not risks:
        return 0.0
    return sum(r.probability * r.impact for r in risks) / len(risks)


def filter_by_cell(risks: Iterable[Risk], probability: int, impact: int) -> List[Risk]:
    return [r for r in risks if r.probability == probability and r.impact == impact]


def toggle_filter(current: Optional[Cell], probability: int, impact: int) -> Optional[Cell]:
    """Selecting the active cell again clears the filter."""
    if current == (probability, impact):
        return None
    return (probability, impact)


def risk_row(risk: Risk, settings: Optional[RegisterSettings] = None) -> Dict[str, Any]:
    return {
        "id": risk.id,
        "title": risk.title,
        "description": risk.description,
        "category": risk.category,
        "probability": risk.probability,
        "impact": risk.impact,
        "score": risk.score,
        "severity": severity_band(risk.score, settings),
        "owner": risk.owner,
        "priority": risk.priority.value,
        "status": risk.status.value,
        "dateIdentified": iso_date(risk.date_identified),
        "dateResolved": iso_date(risk.date_resolved),
        "lastReviewed": iso_date(risk.last_reviewed),
        "lastNote": risk.last_note,
    }


def dashboard(
    project: Project,
    cell: Optional[Cell] = None,
    settings: Optional[RegisterSettings] = None,
) -> Dict[str, Any]:
    """Aggregated score, full matrix and the (optionally filtered) risk rows."""
    settings = settings or default_settings()
    score = aggregated_score(project.risks)
    risks = filter_by_cell(project.risks, *cell) if cell else project.risks
    return {
        "projectId": project.id,
        "aggregatedScore": round(score, 1),
        "aggregatedSeverity": severity_band(score, settings),
        "riskCount": len(project.risks),
        "filter": {"probability": cell[0], "impact": cell[1]} if cell else None,
        "matrix": matrix_counts(build_matrix(project.risks), settings),
        "risks": [risk_row(r, settings) for r in risks],
    }
