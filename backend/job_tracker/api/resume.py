import mimetypes
from pathlib import Path

from job_tracker.api.common import require_data

RESUMES_PATH = "/api/v1/resumes"
SECTION_TYPES = ("base", "intent", "edu", "exp", "project", "skill", "cert", "honor", "summary", "links")


class ResumeAPI:
    def __init__(self, client):
        self.client = client

    def get_my(self) -> dict | None:
        return self.client.get(f"{RESUMES_PATH}/me").data

    def get_by_id(self, resume_id: int) -> dict:
        return require_data(self.client.get(f"{RESUMES_PATH}/{int(resume_id)}"), "resume not found")

    def create(self) -> dict:
        return require_data(self.client.post(RESUMES_PATH), "failed to create resume")

    def update_meta(self, resume_id: int, title: str | None = None, privacy: str | None = None) -> dict:
        payload = {k: v for k, v in {"title": title, "privacy": privacy}.items() if v is not None}
        resp = self.client.put(f"{RESUMES_PATH}/{int(resume_id)}", payload)
        return require_data(resp, "failed to update resume")

    def list_sections(self, resume_id: int) -> list[dict]:
        return self.client.get(f"{RESUMES_PATH}/{int(resume_id)}/sections").data or []

    def upsert_section(self, resume_id: int, section_type: str, content: dict) -> dict:
        if section_type not in SECTION_TYPES:
            raise ValueError(f"unknown resume section type: {section_type!r}")
        resp = self.client.put(f"{RESUMES_PATH}/{int(resume_id)}/sections/{section_type}", content)
        return require_data(resp, f"failed to save resume section {section_type}")

    def upload_attachment(self, resume_id: int, path: Path) -> dict:
        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        resp = self.client.post(
            f"{RESUMES_PATH}/{int(resume_id)}/attachments",
            files={"file": (path.name, path.read_bytes(), content_type)},
        )
        return require_data(resp, "failed to upload attachment")

    def list_attachments(self, resume_id: int) -> list[dict]:
        return self.client.get(f"{RESUMES_PATH}/{int(resume_id)}/attachments").data or []
