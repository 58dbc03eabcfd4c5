from job_tracker.models import DailyStatusCount, TrendPoint
from job_tracker.status_history import ensure_collection

TREND_WINDOWS = {"week": 7, "month": 30, "quarter": 90}


def period_to_days(period: str | None) -> int:
    # Unknown or missing periods fall back to the monthly window.
    return TREND_WINDOWS.get(str(period or ""), 30)


def _coerce_rows(raw) -> list[DailyStatusCount]:
    out = []
    for item in raw:
        if isinstance(item, DailyStatusCount):
            out.append(item)
        elif isinstance(item, dict):
            out.append(DailyStatusCount.from_dict(item))
    return out


def aggregate_status_trends(raw, is_success_status) -> list[TrendPoint]:
    """Fold per-day, per-status counts into one point per day.

    ``is_success_status`` decides which statuses count towards the success
    rate; errors it raises are not caught.
    """
    ensure_collection(raw, "status trends")
    if not callable(is_success_status):
        raise TypeError("is_success_status must be callable")

    by_date: dict[str, dict] = {}
    for row in _coerce_rows(raw):
        agg = by_date.setdefault(row.date, {"total": 0, "success": 0, "distribution": {}})
        agg["total"] += row.count
        agg["distribution"][row.status] = agg["distribution"].get(row.status, 0) + row.count
        if is_success_status(row.status):
            agg["success"] += row.count

    points = []
    for date in sorted(by_date):
        agg = by_date[date]
        total = agg["total"]
        points.append(
            TrendPoint(
                date=date,
                total_applications=total,
                success_rate=(agg["success"] / total) if total > 0 else 0,
                status_distribution=dict(agg["distribution"]),
            )
        )
    return points
