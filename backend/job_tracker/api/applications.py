from job_tracker.api.common import require_data
from job_tracker.errors import ApiError
from job_tracker.models import JobApplication

APPLICATIONS_PATH = "/api/v1/applications"
PAGE_SIZE = 100
MAX_PAGES = 100


class JobApplicationAPI:
    def __init__(self, client):
        self.client = client

    def get_all(self) -> list[JobApplication]:
        out = []
        page = 1
        has_next = True
        while has_next:
            resp = self.client.get(APPLICATIONS_PATH, params={"page": page, "page_size": PAGE_SIZE})
            payload = resp.data
            if isinstance(payload, list):
                out.extend(JobApplication.from_dict(x) for x in payload if isinstance(x, dict))
                break

            payload = payload if isinstance(payload, dict) else {}
            rows = payload.get("data") if isinstance(payload.get("data"), list) else []
            out.extend(JobApplication.from_dict(x) for x in rows if isinstance(x, dict))
            has_next = bool(payload.get("has_next"))
            page += 1
            if page > MAX_PAGES:
                break
        return out

    def get_by_id(self, application_id: int) -> JobApplication:
        resp = self.client.get(f"{APPLICATIONS_PATH}/{int(application_id)}")
        return JobApplication.from_dict(require_data(resp, "application not found"))

    def create(self, data: dict) -> JobApplication:
        if not str(data.get("company_name") or "").strip() or not str(data.get("position_title") or "").strip():
            raise ValueError("company_name and position_title are required")
        resp = self.client.post(APPLICATIONS_PATH, data)
        return JobApplication.from_dict(require_data(resp, "failed to create application"))

    def update(self, application_id: int, data: dict) -> JobApplication:
        resp = self.client.put(f"{APPLICATIONS_PATH}/{int(application_id)}", data)
        return JobApplication.from_dict(require_data(resp, "failed to update application"))

    def delete(self, application_id: int):
        self.client.delete(f"{APPLICATIONS_PATH}/{int(application_id)}")

    def get_statistics(self) -> dict:
        resp = self.client.get(f"{APPLICATIONS_PATH}/statistics")
        return require_data(resp, "failed to load application statistics")

    def health_check(self) -> bool:
        try:
            self.client.request("GET", "/health", raw=True)
        except ApiError:
            return False
        return True
