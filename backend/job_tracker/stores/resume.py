from datetime import datetime, timezone
from pathlib import Path

from job_tracker.api.resume import ResumeAPI
from job_tracker.errors import ApiError
from job_tracker.observability import log_event


class ResumeStore:
    def __init__(self, client, api: ResumeAPI | None = None, clock=None):
        self.api = api or ResumeAPI(client)
        self.resume: dict | None = None
        self.sections: dict[str, object] = {}
        self.attachments: list[dict] = []
        self.last_saved_at: str = ""
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def resume_id(self) -> int | None:
        return self.resume.get("id") if self.resume else None

    def fetch_my_resume(self) -> dict | None:
        try:
            data = self.api.get_my() or {}
            self.resume = data.get("resume")
            self.fetch_sections()
            self.fetch_attachments()
        except ApiError as e:
            log_event("resume_fetch_failed", level="error", resume_id=self.resume_id, message=e.message)
            raise
        return self.resume

    def fetch_sections(self) -> dict:
        if self.resume_id is None:
            return self.sections
        self.sections = {
            s.get("type"): s.get("content")
            for s in self.api.list_sections(self.resume_id)
            if isinstance(s, dict) and s.get("type")
        }
        return self.sections

    def fetch_attachments(self) -> list[dict]:
        if self.resume_id is None:
            return self.attachments
        listed = self.api.list_attachments(self.resume_id)
        self.attachments = listed if isinstance(listed, list) else []
        return self.attachments

    def upsert_section(self, section_type: str, content) -> bool:
        if self.resume_id is None:
            return False
        try:
            self.api.upsert_section(self.resume_id, section_type, content)
        except ApiError as e:
            log_event("resume_section_save_failed", level="error", section=section_type, message=e.message)
            raise
        self.sections[section_type] = content
        self.refresh_resume_meta()
        self.last_saved_at = self._clock().isoformat()
        return True

    def upload_attachment(self, path: Path) -> dict | None:
        if self.resume_id is None:
            return None
        data = self.api.upload_attachment(self.resume_id, path)
        attachment = data.get("attachment") if isinstance(data, dict) else None
        if attachment:
            self.attachments = [{**attachment, "url": data.get("url")}, *self.attachments]
        self.refresh_resume_meta()
        return data

    def refresh_resume_meta(self):
        """Reload the resume header (completeness, timestamps); failures are only logged."""
        try:
            data = self.api.get_my() or {}
        except ApiError as e:
            log_event("resume_meta_refresh_failed", level="warning", message=e.message)
            return
        self.resume = data.get("resume") or self.resume
