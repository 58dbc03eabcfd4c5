import math
from dataclasses import asdict, dataclass, field

from job_tracker.statuses import DEFAULT_INITIAL_STATUS, UNKNOWN_STAGE

_TRIGGERS = {"manual", "auto", "system"}


def _first_non_empty(obj: dict, *keys):
    for key in keys:
        value = obj.get(key)
        if value not in (None, ""):
            return value
    return None


def _optional_str(value) -> str | None:
    if value is None:
        return None
    return str(value)


def _optional_number(value) -> float | int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def _optional_int(value) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _non_negative_int(value) -> int:
    number = _optional_number(value)
    if number is None or number < 0:
        return 0
    return int(number)


@dataclass(frozen=True)
class StatusChangeRecord:
    """One raw row of a server-side status change log.

    ``from_dict`` is the only place legacy key aliases are resolved:

    - ``new_status``: ``new_status``, then ``status``
    - ``note``: ``note``, then ``metadata.note``
    - ``interview_scheduled``: ``metadata.interview_time``, then
      ``metadata.interview_scheduled``
    - ``trigger``: kept only when one of manual/auto/system
    - ``duration_minutes`` / ``user_id``: dropped when not numeric
    - ``metadata``: dropped when not a mapping
    """

    new_status: str
    old_status: str | None = None
    status_changed_at: str = ""
    duration_minutes: float | int | None = None
    note: str | None = None
    trigger: str | None = None
    user_id: int | None = None
    metadata: dict | None = None
    interview_scheduled: str | None = None

    @classmethod
    def from_dict(cls, obj: dict):
        metadata = obj.get("metadata") if isinstance(obj.get("metadata"), dict) else None
        meta = metadata or {}

        note = obj.get("note")
        if note is None:
            note = meta.get("note")

        trigger = str(obj.get("trigger") or "").strip().lower()

        return cls(
            new_status=str(_first_non_empty(obj, "new_status", "status") or ""),
            old_status=_optional_str(obj.get("old_status")),
            status_changed_at=str(obj.get("status_changed_at") or ""),
            duration_minutes=_optional_number(obj.get("duration_minutes")),
            note=_optional_str(note),
            trigger=trigger if trigger in _TRIGGERS else None,
            user_id=_optional_int(obj.get("user_id")),
            metadata=dict(metadata) if metadata is not None else None,
            interview_scheduled=_optional_str(_first_non_empty(meta, "interview_time", "interview_scheduled")),
        )


@dataclass(frozen=True)
class TimelineEntry:
    status: str
    timestamp: str
    duration: float | int | None = None
    note: str | None = None
    trigger: str | None = None
    user_id: int | None = None
    interview_scheduled: str | None = None
    metadata: dict | None = None

    @classmethod
    def from_record(cls, record: StatusChangeRecord):
        return cls(
            status=record.new_status,
            timestamp=record.status_changed_at,
            duration=record.duration_minutes,
            note=record.note,
            trigger=record.trigger,
            user_id=record.user_id,
            interview_scheduled=record.interview_scheduled,
            metadata=record.metadata,
        )


@dataclass(frozen=True)
class HistorySummary:
    total_duration: float | int = 0
    status_count: int = 0
    last_updated: str = ""
    current_stage: str = UNKNOWN_STAGE
    initial_status: str = DEFAULT_INITIAL_STATUS


@dataclass(frozen=True)
class StatusHistory:
    entries: tuple[TimelineEntry, ...] = ()
    summary: HistorySummary = field(default_factory=HistorySummary)

    def to_dict(self) -> dict:
        return {
            "history": [asdict(entry) for entry in self.entries],
            "metadata": asdict(self.summary),
        }


@dataclass(frozen=True)
class DailyStatusCount:
    date: str
    status: str
    count: int = 0

    @classmethod
    def from_dict(cls, obj: dict):
        return cls(
            date=str(_first_non_empty(obj, "date", "day") or ""),
            status=str(_first_non_empty(obj, "status", "new_status") or ""),
            count=_non_negative_int(obj.get("count")),
        )


@dataclass(frozen=True)
class TrendPoint:
    date: str
    total_applications: int
    success_rate: float
    status_distribution: dict

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class JobApplication:
    id: int
    company_name: str
    position_title: str
    application_date: str
    status: str
    job_description: str | None = None
    salary_range: str | None = None
    work_location: str | None = None
    contact_info: str | None = None
    notes: str | None = None
    interview_time: str | None = None
    reminder_time: str | None = None
    reminder_enabled: bool = False
    follow_up_date: str | None = None
    hr_name: str | None = None
    hr_phone: str | None = None
    hr_email: str | None = None
    interview_location: str | None = None
    interview_type: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, obj: dict):
        return cls(
            id=_optional_int(obj.get("id")) or 0,
            company_name=str(obj.get("company_name") or ""),
            position_title=str(obj.get("position_title") or ""),
            application_date=str(obj.get("application_date") or ""),
            status=str(obj.get("status") or DEFAULT_INITIAL_STATUS),
            job_description=_optional_str(obj.get("job_description")),
            salary_range=_optional_str(obj.get("salary_range")),
            work_location=_optional_str(obj.get("work_location")),
            contact_info=_optional_str(obj.get("contact_info")),
            notes=_optional_str(obj.get("notes")),
            interview_time=_optional_str(obj.get("interview_time")),
            reminder_time=_optional_str(obj.get("reminder_time")),
            reminder_enabled=bool(obj.get("reminder_enabled", False)),
            follow_up_date=_optional_str(obj.get("follow_up_date")),
            hr_name=_optional_str(obj.get("hr_name")),
            hr_phone=_optional_str(obj.get("hr_phone")),
            hr_email=_optional_str(obj.get("hr_email")),
            interview_location=_optional_str(obj.get("interview_location")),
            interview_type=_optional_str(obj.get("interview_type")),
            created_at=str(obj.get("created_at") or ""),
            updated_at=str(obj.get("updated_at") or ""),
        )


@dataclass(frozen=True)
class User:
    id: int
    username: str
    email: str
    full_name: str | None = None
    avatar: str | None = None
    bio: str | None = None
    phone: str | None = None
    location: str | None = None
    website: str | None = None
    created_at: str = ""
    updated_at: str | None = None
    last_login_at: str | None = None
    is_active: bool = True

    @classmethod
    def from_dict(cls, obj: dict):
        return cls(
            id=_optional_int(obj.get("id")) or 0,
            username=str(obj.get("username") or ""),
            email=str(obj.get("email") or ""),
            full_name=_optional_str(obj.get("full_name")),
            avatar=_optional_str(obj.get("avatar")),
            bio=_optional_str(obj.get("bio")),
            phone=_optional_str(obj.get("phone")),
            location=_optional_str(obj.get("location")),
            website=_optional_str(obj.get("website")),
            created_at=str(obj.get("created_at") or ""),
            updated_at=_optional_str(obj.get("updated_at")),
            last_login_at=_optional_str(obj.get("last_login_at")),
            is_active=bool(obj.get("is_active", True)),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AuthTokens:
    token: str
    refresh_token: str | None = None
    user: User | None = None

    @classmethod
    def from_dict(cls, obj: dict):
        user = obj.get("user")
        return cls(
            token=str(obj.get("token") or ""),
            refresh_token=_optional_str(obj.get("refresh_token")) or None,
            user=User.from_dict(user) if isinstance(user, dict) else None,
        )


@dataclass(frozen=True)
class ExportTask:
    task_id: str
    status: str
    progress: int = 0
    processed_records: int = 0
    total_records: int = 0
    filename: str | None = None
    file_size: int | None = None
    download_url: str | None = None
    error_message: str | None = None
    created_at: str = ""
    completed_at: str | None = None
    expires_at: str | None = None

    @classmethod
    def from_dict(cls, obj: dict):
        return cls(
            task_id=str(obj.get("task_id") or ""),
            status=str(obj.get("status") or "pending"),
            progress=_non_negative_int(obj.get("progress")),
            processed_records=_non_negative_int(obj.get("processed_records")),
            total_records=_non_negative_int(obj.get("total_records")),
            filename=_optional_str(obj.get("filename")),
            file_size=_optional_int(obj.get("file_size")),
            download_url=_optional_str(obj.get("download_url")),
            error_message=_optional_str(obj.get("error_message")),
            created_at=str(obj.get("created_at") or ""),
            completed_at=_optional_str(obj.get("completed_at")),
            expires_at=_optional_str(obj.get("expires_at")),
        )

    @property
    def is_finished(self) -> bool:
        return self.status in {"completed", "failed", "cancelled", "expired"}
