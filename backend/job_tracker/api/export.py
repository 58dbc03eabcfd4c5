import re
import time
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import unquote

from job_tracker.api.common import require_data
from job_tracker.errors import ApiError
from job_tracker.models import ExportTask
from job_tracker.observability import log_event
from job_tracker.status_history import parse_timestamp

EXPORT_PATH = "/api/v1/export"
DEFAULT_EXPORT_FILENAME = "求职投递记录.xlsx"
DEFAULT_DOWNLOAD_TIMEOUT_SEC = 60
SUPPORTED_FORMATS = ("xlsx", "csv")

_FILENAME_RE = re.compile(r'filename[*]?="([^"]+)"')

EXPORT_FIELD_GROUPS = (
    {
        "group": "basic",
        "label": "基础信息",
        "fields": (
            {"field": "company_name", "label": "公司名称", "required": True},
            {"field": "position_title", "label": "职位标题", "required": True},
            {"field": "application_date", "label": "投递日期", "required": True},
            {"field": "status", "label": "当前状态", "required": True},
        ),
    },
    {
        "group": "job_details",
        "label": "职位详情",
        "fields": (
            {"field": "job_description", "label": "职位描述"},
            {"field": "salary_range", "label": "薪资范围"},
            {"field": "work_location", "label": "工作地点"},
        ),
    },
    {
        "group": "interview",
        "label": "面试信息",
        "fields": (
            {"field": "interview_time", "label": "面试时间"},
            {"field": "interview_location", "label": "面试地点"},
            {"field": "interview_type", "label": "面试类型"},
        ),
    },
    {
        "group": "contact",
        "label": "联系信息",
        "fields": (
            {"field": "hr_name", "label": "HR姓名"},
            {"field": "hr_phone", "label": "HR电话"},
            {"field": "hr_email", "label": "HR邮箱"},
            {"field": "contact_info", "label": "联系方式"},
        ),
    },
    {
        "group": "reminders",
        "label": "提醒跟进",
        "fields": (
            {"field": "reminder_time", "label": "提醒时间"},
            {"field": "follow_up_date", "label": "跟进日期"},
        ),
    },
    {
        "group": "metadata",
        "label": "其他信息",
        "fields": (
            {"field": "notes", "label": "备注"},
            {"field": "created_at", "label": "创建时间"},
            {"field": "updated_at", "label": "更新时间"},
        ),
    },
)

EXPORTABLE_FIELDS = tuple(f["field"] for group in EXPORT_FIELD_GROUPS for f in group["fields"])

DEFAULT_EXPORT_FIELDS = (
    "company_name",
    "position_title",
    "application_date",
    "status",
    "salary_range",
    "work_location",
    "hr_name",
    "hr_phone",
    "interview_time",
    "notes",
)

TASK_STATUS_CONFIG = {
    "pending": {"label": "等待处理", "color": "default", "icon": "ClockCircleOutlined"},
    "processing": {"label": "正在处理", "color": "processing", "icon": "LoadingOutlined"},
    "completed": {"label": "已完成", "color": "success", "icon": "CheckCircleOutlined"},
    "failed": {"label": "失败", "color": "error", "icon": "ExclamationCircleOutlined"},
    "cancelled": {"label": "已取消", "color": "default", "icon": "StopOutlined"},
    "expired": {"label": "已过期", "color": "warning", "icon": "ClockCircleOutlined"},
}


def format_file_size(size) -> str:
    if not size:
        return "--"
    try:
        value = float(size)
    except (TypeError, ValueError):
        return "--"
    if value <= 0:
        return "0 Bytes"

    units = ("Bytes", "KB", "MB", "GB")
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    scaled = round(value, 1)
    text = str(int(scaled)) if scaled.is_integer() else str(scaled)
    return f"{text} {units[i]}"


def format_remaining_time(expires_at, now: datetime | None = None) -> str:
    expiry = parse_timestamp(expires_at) if expires_at else None
    if expiry is None:
        return "--"
    current = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)

    diff = (expiry - current).total_seconds()
    if diff <= 0:
        return "已过期"

    hours = int(diff // 3600)
    minutes = int((diff % 3600) // 60)
    if hours > 24:
        return f"{hours // 24}天"
    if hours > 0:
        return f"{hours}小时{minutes}分钟"
    return f"{minutes}分钟"


def filename_from_disposition(header: str, default: str = DEFAULT_EXPORT_FILENAME) -> str:
    m = _FILENAME_RE.search(header or "")
    if not m:
        return default
    # Keep only the final path component.
    name = Path(unquote(m.group(1))).name
    return name or default


def validate_export_request(req: dict) -> list[str]:
    errors = []
    fmt = str(req.get("format") or "xlsx")
    if fmt not in SUPPORTED_FORMATS:
        errors.append(f"unsupported export format: {fmt!r}")
    fields = req.get("fields")
    if fields is not None:
        unknown = [f for f in fields if f not in EXPORTABLE_FIELDS]
        if unknown:
            errors.append(f"unknown export fields: {', '.join(map(str, unknown))}")
    return errors


class ExportAPI:
    def __init__(self, client, download_timeout_sec: float = DEFAULT_DOWNLOAD_TIMEOUT_SEC):
        self.client = client
        self.download_timeout_sec = float(download_timeout_sec)

    def start_export(self, export_request: dict | None = None) -> ExportTask:
        req = {"format": "xlsx", "fields": list(DEFAULT_EXPORT_FIELDS), **(export_request or {})}
        errors = validate_export_request(req)
        if errors:
            raise ValueError("; ".join(errors))
        resp = self.client.post(f"{EXPORT_PATH}/applications", req)
        return ExportTask.from_dict(require_data(resp, "failed to start export"))

    def get_task_status(self, task_id: str) -> ExportTask:
        resp = self.client.get(f"{EXPORT_PATH}/status/{task_id}")
        return ExportTask.from_dict(require_data(resp, "failed to load export task status"))

    def wait_for_export(self, task_id: str, poll_interval_sec: float = 2.0, timeout_sec: float = 300.0, sleep=time.sleep, clock=time.monotonic) -> ExportTask:
        """Poll ``task_id`` until it reaches a final state."""
        deadline = clock() + float(timeout_sec)
        while True:
            task = self.get_task_status(task_id)
            if task.is_finished:
                return task
            if clock() >= deadline:
                raise ApiError(f"export task {task_id} did not finish within {timeout_sec:g}s")
            log_event("export_waiting", task_id=task_id, status=task.status, progress=task.progress)
            sleep(poll_interval_sec)

    def download_file(self, task_id: str, dest_dir: Path) -> Path:
        try:
            resp = self.client.get(
                f"{EXPORT_PATH}/download/{task_id}",
                raw=True,
                timeout_sec=self.download_timeout_sec,
                headers={"Accept": "*/*"},
            )
        except ApiError as e:
            log_event("export_download_failed", level="error", task_id=task_id, message=e.message)
            raise ApiError("file download failed, please retry", status_code=e.status_code) from e

        filename = filename_from_disposition(resp.header("content-disposition"))
        dest = Path(dest_dir)
        dest.mkdir(parents=True, exist_ok=True)
        target = dest / filename
        target.write_bytes(resp.body)
        log_event("export_downloaded", task_id=task_id, path=str(target), bytes=len(resp.body))
        return target

    def get_export_history(self, page: int = 1, page_size: int = 10) -> dict:
        resp = self.client.get(f"{EXPORT_PATH}/history", params={"page": int(page), "limit": int(page_size)})
        return require_data(resp, "failed to load export history")

    def cancel_task(self, task_id: str):
        self.client.delete(f"{EXPORT_PATH}/cancel/{task_id}")

    def get_supported_formats(self) -> dict:
        return require_data(self.client.get(f"{EXPORT_PATH}/formats"), "failed to load export formats")

    def get_exportable_fields(self):
        return require_data(self.client.get(f"{EXPORT_PATH}/fields"), "failed to load exportable fields")

    def get_export_template(self):
        return require_data(self.client.get(f"{EXPORT_PATH}/template"), "failed to load export template")

    def cleanup_expired_files(self) -> dict:
        return require_data(self.client.post(f"{EXPORT_PATH}/cleanup"), "failed to clean up expired exports")
