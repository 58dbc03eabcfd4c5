import math

from job_tracker.api.status_tracking import StatusTrackingAPI
from job_tracker.errors import ApiError
from job_tracker.models import StatusHistory, TrendPoint
from job_tracker.observability import log_event
from job_tracker.statuses import is_backward_transition, is_in_progress_status, is_passed_status, status_color


def _as_float(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class StatusTrackingStore:
    """Caches status histories per application plus the analytics views built on them."""

    def __init__(self, client, api: StatusTrackingAPI | None = None, is_success_status=is_passed_status):
        self.api = api or StatusTrackingAPI(client)
        self.is_success_status = is_success_status
        self.status_histories: dict[int, StatusHistory] = {}
        self.analytics: dict | None = None
        self.flow_templates: list[dict] = []
        self.user_preferences: dict | None = None
        self.dashboard_data: dict | None = None
        self.status_definitions: dict | None = None

    def _failed(self, event: str, error: ApiError, **fields):
        log_event(event, level="error", message=error.message, status=error.status_code, **fields)

    def fetch_status_history(self, application_id: int, force_refresh: bool = False) -> StatusHistory:
        if not force_refresh and application_id in self.status_histories:
            return self.status_histories[application_id]
        try:
            history = self.api.get_status_history(application_id)
        except ApiError as e:
            self._failed("status_history_fetch_failed", e, application_id=application_id)
            raise
        self.status_histories[application_id] = history
        return history

    def update_application_status(self, application_id: int, status: str, note: str | None = None, metadata: dict | None = None) -> StatusHistory:
        cached = self.status_histories.get(application_id)
        if cached is not None and cached.entries:
            current = cached.summary.current_stage
            if is_backward_transition(current, status) and not str(note or "").strip():
                raise ValueError(f"moving back from {current} to {status} requires a note")

        try:
            self.api.update_status(application_id, status, note=note, metadata=metadata)
        except ApiError as e:
            self._failed("status_update_failed", e, application_id=application_id, new_status=status)
            raise

        self.status_histories.pop(application_id, None)
        history = self.fetch_status_history(application_id, force_refresh=True)
        if self.analytics is not None:
            self.fetch_analytics(force_refresh=True)
        log_event("status_updated", application_id=application_id, new_status=status)
        return history

    def batch_update_statuses(self, updates: list[dict], batch_note: str | None = None):
        try:
            self.api.batch_update_status(updates, batch_note=batch_note)
        except ApiError as e:
            self._failed("batch_status_update_failed", e, count=len(updates))
            raise

        for update in updates:
            self.status_histories.pop(update.get("application_id"), None)
        if self.analytics is not None:
            self.fetch_analytics(force_refresh=True)
        log_event("batch_status_updated", count=len(updates))

    def fetch_analytics(self, force_refresh: bool = False, start_date: str | None = None, end_date: str | None = None) -> dict:
        if not force_refresh and self.analytics is not None:
            return self.analytics
        try:
            self.analytics = self.api.get_status_analytics(start_date=start_date, end_date=end_date)
        except ApiError as e:
            self._failed("status_analytics_fetch_failed", e)
            raise
        return self.analytics

    def fetch_status_trends(self, period: str | None = None) -> list[TrendPoint]:
        # Not cached: each query window yields different daily rows.
        try:
            return self.api.get_status_trends(period, is_success_status=self.is_success_status)
        except ApiError as e:
            self._failed("status_trends_fetch_failed", e, period=period)
            raise

    def fetch_process_insights(self) -> dict:
        try:
            return self.api.get_process_insights()
        except ApiError as e:
            self._failed("process_insights_fetch_failed", e)
            raise

    @property
    def process_insights(self) -> list:
        if not self.analytics:
            return []
        return self.analytics.get("insights") or []

    @property
    def status_stats_cards(self) -> list[dict]:
        if not self.analytics:
            return []

        total = self.analytics.get("total_applications") or 0
        distribution = self.analytics.get("status_distribution") or {}
        success_rate = _as_float(self.analytics.get("success_rate"))
        active = sum(int(_as_float(count)) for status, count in distribution.items() if is_in_progress_status(status))

        avg_minutes = sum(_as_float(v) for v in (self.analytics.get("average_durations") or {}).values())
        avg_days = avg_minutes / 60 / 24 if avg_minutes > 0 else 0

        return [
            {"title": "总申请数", "value": total, "icon": "FileTextOutlined", "color": "#1890ff"},
            {"title": "活跃申请", "value": active, "icon": "ClockCircleOutlined", "color": "#52c41a"},
            {"title": "成功率", "value": f"{success_rate * 100:.1f}%", "icon": "TrophyOutlined", "color": "#faad14"},
            {"title": "平均周期", "value": f"{math.ceil(avg_days)}天", "icon": "FieldTimeOutlined", "color": "#722ed1"},
        ]

    @property
    def status_distribution_data(self) -> list[dict]:
        distribution = (self.analytics or {}).get("status_distribution")
        if not distribution:
            return []

        total = sum(_as_float(v) for v in distribution.values()) or 1
        return [
            {
                "name": status,
                "value": _as_float(count),
                "percentage": round(_as_float(count) / total * 100, 2),
                "color": status_color(status),
            }
            for status, count in distribution.items()
        ]

    def fetch_flow_templates(self, force_refresh: bool = False) -> list[dict]:
        if not force_refresh and self.flow_templates:
            return self.flow_templates
        try:
            self.flow_templates = self.api.get_status_flow_templates()
        except ApiError as e:
            self._failed("flow_templates_fetch_failed", e)
            raise
        return self.flow_templates

    def fetch_user_preferences(self, force_refresh: bool = False) -> dict:
        if not force_refresh and self.user_preferences is not None:
            return self.user_preferences
        try:
            self.user_preferences = self.api.get_user_status_preferences()
        except ApiError as e:
            self._failed("status_preferences_fetch_failed", e)
            raise
        return self.user_preferences

    def update_user_preferences(self, preferences: dict) -> dict:
        try:
            self.user_preferences = self.api.update_user_status_preferences(preferences)
        except ApiError as e:
            self._failed("status_preferences_update_failed", e)
            raise
        return self.user_preferences

    def get_available_transitions(self, current_status: str) -> list[dict]:
        try:
            return self.api.get_status_transitions(current_status)
        except ApiError as e:
            self._failed("status_transitions_fetch_failed", e, current_status=current_status)
            raise

    def fetch_dashboard_data(self, force_refresh: bool = False) -> dict:
        if not force_refresh and self.dashboard_data is not None:
            return self.dashboard_data
        try:
            self.dashboard_data = self.api.get_dashboard_data()
        except ApiError as e:
            self._failed("dashboard_fetch_failed", e)
            raise
        return self.dashboard_data

    def fetch_status_definitions(self) -> dict:
        if self.status_definitions is not None:
            return self.status_definitions
        try:
            self.status_definitions = self.api.get_status_definitions()
        except ApiError as e:
            self._failed("status_definitions_fetch_failed", e)
            raise
        return self.status_definitions

    def clear_cache(self):
        self.status_histories.clear()
        self.analytics = None
        self.dashboard_data = None
        self.flow_templates = []
        self.user_preferences = None
        self.status_definitions = None
