"""
Aggregation helpers shared by the plan/actual routers and the dashboard.

All functions are pure: they take rows already fetched from the database
(mappings with at least ``month`` and the value column) and return plain dicts.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence


MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

VARIANCE_BEHIND = "behind"
VARIANCE_AHEAD = "ahead"
VARIANCE_ON = "on"


def _num(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def sum_values(rows: Iterable[Mapping[str, Any]], key: str) -> float:
    return sum(_num(r.get(key)) for r in rows)


def monthly_totals(
    plan_rows: Iterable[Mapping[str, Any]],
    actual_rows: Iterable[Mapping[str, Any]],
    planned_key: str = "planned",
    actual_key: str = "actual",
) -> Dict[int, Dict[str, float]]:
    """Sum planned/actual per month. Months without rows are absent."""
    totals: Dict[int, Dict[str, float]] = {}
    for r in plan_rows:
        m = int(r["month"])
        totals.setdefault(m, {"planned": 0.0, "actual": 0.0})
        totals[m]["planned"] += _num(r.get(planned_key))
    for r in actual_rows:
        m = int(r["month"])
        totals.setdefault(m, {"planned": 0.0, "actual": 0.0})
        totals[m]["actual"] += _num(r.get(actual_key))
    return totals


def cumulative_series(
    plan_rows: Iterable[Mapping[str, Any]],
    actual_rows: Iterable[Mapping[str, Any]],
    planned_key: str = "planned",
    actual_key: str = "actual",
    keep_missing: bool = False,
) -> List[Dict[str, Any]]:
    """Twelve monthly entries with running totals accumulated from month 1.

    With ``keep_missing`` a month that has no non-null value reports ``None``
    for its monthly figure; it still adds 0 to the running total.
    """
    plan_rows = list(plan_rows)
    actual_rows = list(actual_rows)
    totals = monthly_totals(plan_rows, actual_rows, planned_key, actual_key)
    planned_months = {int(r["month"]) for r in plan_rows if r.get(planned_key) is not None}
    actual_months = {int(r["month"]) for r in actual_rows if r.get(actual_key) is not None}

    out: List[Dict[str, Any]] = []
    cum_planned = 0.0
    cum_actual = 0.0
    for m in range(1, 13):
        mt = totals.get(m, {"planned": 0.0, "actual": 0.0})
        cum_planned += mt["planned"]
        cum_actual += mt["actual"]
        planned: Optional[float] = mt["planned"]
        actual: Optional[float] = mt["actual"]
        if keep_missing:
            planned = planned if m in planned_months else None
            actual = actual if m in actual_months else None
        out.append({
            "month": m,
            "month_name": MONTH_NAMES[m - 1],
            "planned": planned,
            "actual": actual,
            "cumulative_planned": cum_planned,
            "cumulative_actual": cum_actual,
        })
    return out


def weekly_average_series(
    plan_rows: Iterable[Mapping[str, Any]],
    actual_rows: Iterable[Mapping[str, Any]],
    planned_key: str = "planned",
    actual_key: str = "actual",
) -> List[Dict[str, Any]]:
    """Per month sums and the average per weekly entry (0 when no entries)."""
    values: Dict[int, Dict[str, List[float]]] = {m: {"planned": [], "actual": []} for m in range(1, 13)}
    for r in plan_rows:
        values[int(r["month"])]["planned"].append(_num(r.get(planned_key)))
    for r in actual_rows:
        values[int(r["month"])]["actual"].append(_num(r.get(actual_key)))

    out: List[Dict[str, Any]] = []
    for m in range(1, 13):
        planned = values[m]["planned"]
        actual = values[m]["actual"]
        sum_planned = sum(planned)
        sum_actual = sum(actual)
        out.append({
            "month": m,
            "month_name": MONTH_NAMES[m - 1],
            "planned": sum_planned,
            "actual": sum_actual,
            "avg_planned": sum_planned / len(planned) if planned else 0.0,
            "avg_actual": sum_actual / len(actual) if actual else 0.0,
        })
    return out


def tower_totals(
    plan_rows: Iterable[Mapping[str, Any]],
    actual_rows: Iterable[Mapping[str, Any]],
    towers: Sequence[str],
    planned_key: str = "planned",
    actual_key: str = "actual",
) -> List[Dict[str, Any]]:
    """Planned/actual sums per tower, in the given tower order. Unknown towers are ignored."""
    sums = {t: {"planned": 0.0, "actual": 0.0} for t in towers}
    for r in plan_rows:
        if r.get("tower") in sums:
            sums[r["tower"]]["planned"] += _num(r.get(planned_key))
    for r in actual_rows:
        if r.get("tower") in sums:
            sums[r["tower"]]["actual"] += _num(r.get(actual_key))
    return [{"tower": t, "planned": sums[t]["planned"], "actual": sums[t]["actual"]} for t in towers]


def progress_percent(totals: Iterable[Mapping[str, Any]], targets: Mapping[str, float]) -> List[Dict[str, Any]]:
    out = []
    for row in totals:
        target = _num(targets.get(row["tower"]))
        out.append({
            "tower": row["tower"],
            "planned": round(_num(row["planned"]) / target * 100, 1) if target > 0 else 0.0,
            "actual": round(_num(row["actual"]) / target * 100, 1) if target > 0 else 0.0,
        })
    return out


def variance_days(planned_finish: date, projected_finish: date) -> int:
    """Days the projected finish lies after the planned one (negative when earlier)."""
    return (projected_finish - planned_finish).days


def variance_class(variance: Optional[float]) -> str:
    v = _num(variance)
    if v > 0:
        return VARIANCE_BEHIND
    if v < 0:
        return VARIANCE_AHEAD
    return VARIANCE_ON
