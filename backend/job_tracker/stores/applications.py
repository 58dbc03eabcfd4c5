from collections import Counter
from datetime import date, datetime

from job_tracker.api.applications import JobApplicationAPI
from job_tracker.errors import ApiError
from job_tracker.models import JobApplication
from job_tracker.observability import log_event
from job_tracker.status_history import parse_timestamp


def _as_date(value) -> date | None:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    dt = parse_timestamp(value)
    return dt.date() if dt is not None else None


class JobApplicationStore:
    def __init__(self, client, api: JobApplicationAPI | None = None):
        self.api = api or JobApplicationAPI(client)
        self.applications: list[JobApplication] = []
        self.current_application: JobApplication | None = None
        self.statistics: dict | None = None

    @property
    def total_count(self) -> int:
        return len(self.applications)

    @property
    def status_counts(self) -> dict[str, int]:
        return dict(Counter(app.status for app in self.applications))

    def fetch_all(self) -> list[JobApplication]:
        try:
            self.applications = self.api.get_all()
        except ApiError as e:
            log_event("applications_fetch_failed", level="error", message=e.message)
            raise
        return self.applications

    def fetch_by_id(self, application_id: int) -> JobApplication:
        try:
            self.current_application = self.api.get_by_id(application_id)
        except ApiError as e:
            log_event("application_fetch_failed", level="error", application_id=application_id, message=e.message)
            raise
        return self.current_application

    def create(self, data: dict) -> JobApplication:
        try:
            created = self.api.create(data)
        except ApiError as e:
            log_event("application_create_failed", level="error", message=e.message)
            raise
        self.applications.insert(0, created)
        return created

    def update(self, application_id: int, data: dict) -> JobApplication:
        try:
            updated = self.api.update(application_id, data)
        except ApiError as e:
            log_event("application_update_failed", level="error", application_id=application_id, message=e.message)
            raise
        for i, app in enumerate(self.applications):
            if app.id == application_id:
                self.applications[i] = updated
                break
        return updated

    def delete(self, application_id: int):
        try:
            self.api.delete(application_id)
        except ApiError as e:
            log_event("application_delete_failed", level="error", application_id=application_id, message=e.message)
            raise
        self.applications = [app for app in self.applications if app.id != application_id]

    def fetch_statistics(self) -> dict:
        try:
            self.statistics = self.api.get_statistics()
        except ApiError as e:
            log_event("statistics_fetch_failed", level="error", message=e.message)
            raise
        return self.statistics

    def filter_applications(self, status: str | None = None, company: str | None = None, date_range=None) -> list[JobApplication]:
        """Filter the cached applications.

        ``company`` is a case-insensitive substring match; ``date_range`` is an
        inclusive ``(start, end)`` pair of dates or ISO strings. Applications
        with an unparseable date are excluded when a range is given.
        """
        out = self.applications
        if status:
            out = [app for app in out if app.status == status]
        if company:
            needle = company.lower()
            out = [app for app in out if needle in app.company_name.lower()]
        if date_range:
            start, end = (_as_date(d) for d in date_range)
            if start is None or end is None:
                raise ValueError(f"invalid date range: {date_range!r}")
            kept = []
            for app in out:
                applied = _as_date(app.application_date)
                if applied is not None and start <= applied <= end:
                    kept.append(app)
            out = kept
        return list(out)
