import json
from urllib.parse import quote

from job_tracker.api.common import page_params, require_data
from job_tracker.models import StatusHistory, TrendPoint
from job_tracker.statuses import is_passed_status
from job_tracker.status_history import normalize_status_history
from job_tracker.trends import aggregate_status_trends, period_to_days

APPLICATIONS_PATH = "/api/v1/job-applications"
TEMPLATES_PATH = "/api/v1/status-flow-templates"
PREFERENCES_PATH = "/api/v1/user-status-preferences"
MAX_BATCH_UPDATES = 100


class StatusTrackingAPI:
    """Status history, transitions and analytics endpoints."""

    def __init__(self, client):
        self.client = client

    def get_status_history(self, application_id: int, page: int | None = None, page_size: int | None = None) -> StatusHistory:
        resp = self.client.get(
            f"{APPLICATIONS_PATH}/{int(application_id)}/status-history",
            params=page_params(page, page_size),
        )
        data = require_data(resp, "failed to load status history")
        raw = data.get("history") if isinstance(data, dict) else None
        return normalize_status_history(raw if isinstance(raw, list) else [])

    def update_status(self, application_id: int, status: str, note: str | None = None, metadata: dict | None = None):
        if not str(status or "").strip():
            raise ValueError("status is required")
        body = {"status": status}
        if note:
            body["note"] = note
        if metadata:
            body["metadata"] = metadata
        self.client.post(f"{APPLICATIONS_PATH}/{int(application_id)}/status", body)

    def get_status_timeline(self, application_id: int) -> dict:
        resp = self.client.get(f"{APPLICATIONS_PATH}/{int(application_id)}/status-timeline")
        return require_data(resp, "failed to load status timeline")

    def batch_update_status(self, updates: list[dict], batch_note: str | None = None):
        updates = list(updates or [])
        if not updates:
            raise ValueError("batch update needs at least one item")
        if len(updates) > MAX_BATCH_UPDATES:
            raise ValueError(f"batch update supports at most {MAX_BATCH_UPDATES} records")
        body = {"updates": updates}
        if batch_note:
            body["batch_note"] = batch_note
        self.client.put(f"{APPLICATIONS_PATH}/status/batch", body)

    def get_status_flow_templates(self) -> list[dict]:
        return self.client.get(TEMPLATES_PATH).data or []

    def create_status_flow_template(self, template: dict) -> dict:
        resp = self.client.post(TEMPLATES_PATH, template)
        return require_data(resp, "failed to create flow template")

    def update_status_flow_template(self, template_id: int, template: dict) -> dict:
        resp = self.client.put(f"{TEMPLATES_PATH}/{int(template_id)}", template)
        return require_data(resp, "failed to update flow template")

    def delete_status_flow_template(self, template_id: int):
        self.client.delete(f"{TEMPLATES_PATH}/{int(template_id)}")

    def get_user_status_preferences(self) -> dict:
        resp = self.client.get(PREFERENCES_PATH)
        return require_data(resp, "failed to load status preferences")

    def update_user_status_preferences(self, preferences: dict) -> dict:
        resp = self.client.put(PREFERENCES_PATH, {"preference_config": preferences})
        return require_data(resp, "failed to update status preferences")

    def get_status_transitions(self, current_status: str) -> list[dict]:
        resp = self.client.get(f"/api/v1/status-transitions/{quote(str(current_status), safe='')}")
        return resp.data or []

    def get_status_definitions(self) -> dict:
        resp = self.client.get("/api/v1/status-definitions")
        return require_data(resp, "failed to load status definitions")

    def get_status_analytics(self, start_date: str | None = None, end_date: str | None = None) -> dict:
        resp = self.client.get(
            f"{APPLICATIONS_PATH}/status-analytics",
            params={"start_date": start_date, "end_date": end_date},
        )
        return require_data(resp, "failed to load status analytics")

    def get_status_trends(self, period: str | None = None, is_success_status=is_passed_status) -> list[TrendPoint]:
        """Fetch daily status counts for ``period`` and fold them into trend points.

        The server answers either with a bare list of ``{date, status, count}``
        rows or with ``{"days": n, "trends": [...]}``, where ``trends`` may be
        null on an empty window.
        """
        resp = self.client.get(f"{APPLICATIONS_PATH}/status-trends", params={"days": period_to_days(period)})
        data = require_data(resp, "failed to load status trends")
        if isinstance(data, list):
            rows = data
        elif isinstance(data, dict) and isinstance(data.get("trends"), list):
            rows = data["trends"]
        else:
            rows = []
        return aggregate_status_trends(rows, is_success_status)

    def get_process_insights(self) -> dict:
        resp = self.client.get(f"{APPLICATIONS_PATH}/process-insights")
        return require_data(resp, "failed to load process insights")

    def filter_applications(
        self,
        status: str | None = None,
        stage: str | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> dict:
        params = {"status": status, "stage": stage, **page_params(page, page_size)}
        resp = self.client.get("/api/v1/applications", params=params)
        return require_data(resp, "failed to load filtered applications")

    def search_applications(
        self,
        query: str,
        filters: dict | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> dict:
        params = {"q": query, **page_params(page, page_size)}
        if filters:
            params["filters"] = json.dumps(filters, ensure_ascii=False)
        resp = self.client.get("/api/v1/applications/search", params=params)
        return require_data(resp, "search failed")

    def get_dashboard_data(self) -> dict:
        resp = self.client.get("/api/v1/applications/dashboard")
        return require_data(resp, "failed to load dashboard data")
