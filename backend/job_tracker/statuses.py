APPLIED = "已投递"
RESUME_SCREENING = "简历筛选中"
RESUME_SCREENING_FAIL = "简历筛选未通过"

WRITTEN_TEST = "笔试中"
WRITTEN_TEST_PASS = "笔试通过"
WRITTEN_TEST_FAIL = "笔试未通过"

FIRST_INTERVIEW = "一面中"
FIRST_PASS = "一面通过"
FIRST_FAIL = "一面未通过"

SECOND_INTERVIEW = "二面中"
SECOND_PASS = "二面通过"
SECOND_FAIL = "二面未通过"

THIRD_INTERVIEW = "三面中"
THIRD_PASS = "三面通过"
THIRD_FAIL = "三面未通过"

HR_INTERVIEW = "HR面中"
HR_PASS = "HR面通过"
HR_FAIL = "HR面未通过"

OFFER_WAITING = "待发offer"
REJECTED = "已拒绝"
OFFER_RECEIVED = "已收到offer"
OFFER_ACCEPTED = "已接受offer"
PROCESS_FINISHED = "流程结束"

ALL_STATUSES = (
    APPLIED,
    RESUME_SCREENING,
    RESUME_SCREENING_FAIL,
    WRITTEN_TEST,
    WRITTEN_TEST_PASS,
    WRITTEN_TEST_FAIL,
    FIRST_INTERVIEW,
    FIRST_PASS,
    FIRST_FAIL,
    SECOND_INTERVIEW,
    SECOND_PASS,
    SECOND_FAIL,
    THIRD_INTERVIEW,
    THIRD_PASS,
    THIRD_FAIL,
    HR_INTERVIEW,
    HR_PASS,
    HR_FAIL,
    OFFER_WAITING,
    REJECTED,
    OFFER_RECEIVED,
    OFFER_ACCEPTED,
    PROCESS_FINISHED,
)

# Sentinels used when a history has no entries or no recorded starting state.
UNKNOWN_STAGE = "未知阶段"
DEFAULT_INITIAL_STATUS = APPLIED

_FAILED_STATUSES = frozenset(
    {
        RESUME_SCREENING_FAIL,
        WRITTEN_TEST_FAIL,
        FIRST_FAIL,
        SECOND_FAIL,
        THIRD_FAIL,
        HR_FAIL,
        REJECTED,
    }
)

_IN_PROGRESS_STATUSES = frozenset(
    {
        APPLIED,
        RESUME_SCREENING,
        WRITTEN_TEST,
        FIRST_INTERVIEW,
        SECOND_INTERVIEW,
        THIRD_INTERVIEW,
        HR_INTERVIEW,
    }
)

_PASSED_STATUSES = frozenset(
    {
        WRITTEN_TEST_PASS,
        FIRST_PASS,
        SECOND_PASS,
        THIRD_PASS,
        HR_PASS,
        OFFER_WAITING,
        OFFER_RECEIVED,
        OFFER_ACCEPTED,
        PROCESS_FINISHED,
    }
)

_TERMINAL_STATUSES = frozenset(
    {
        PROCESS_FINISHED,
        REJECTED,
        RESUME_SCREENING_FAIL,
        WRITTEN_TEST_FAIL,
        FIRST_FAIL,
        SECOND_FAIL,
        THIRD_FAIL,
        HR_FAIL,
    }
)

# Pass/fail sub-statuses share the rank of their stage.
_STAGE_RANKS = {
    APPLIED: 0,
    RESUME_SCREENING: 10,
    RESUME_SCREENING_FAIL: 10,
    WRITTEN_TEST: 20,
    WRITTEN_TEST_PASS: 20,
    WRITTEN_TEST_FAIL: 20,
    FIRST_INTERVIEW: 30,
    FIRST_PASS: 30,
    FIRST_FAIL: 30,
    SECOND_INTERVIEW: 40,
    SECOND_PASS: 40,
    SECOND_FAIL: 40,
    THIRD_INTERVIEW: 50,
    THIRD_PASS: 50,
    THIRD_FAIL: 50,
    HR_INTERVIEW: 60,
    HR_PASS: 60,
    HR_FAIL: 60,
    OFFER_WAITING: 70,
    OFFER_RECEIVED: 80,
    OFFER_ACCEPTED: 90,
    REJECTED: 90,
    PROCESS_FINISHED: 100,
}

_DIRECT_TRANSITIONS = {
    WRITTEN_TEST: FIRST_INTERVIEW,
    FIRST_INTERVIEW: SECOND_INTERVIEW,
    SECOND_INTERVIEW: THIRD_INTERVIEW,
    THIRD_INTERVIEW: HR_INTERVIEW,
}

_STATUS_ICONS = {
    APPLIED: "SendOutlined",
    RESUME_SCREENING: "EyeOutlined",
    RESUME_SCREENING_FAIL: "CloseCircleOutlined",
    WRITTEN_TEST: "EditOutlined",
    WRITTEN_TEST_PASS: "CheckCircleOutlined",
    WRITTEN_TEST_FAIL: "CloseCircleOutlined",
    FIRST_INTERVIEW: "UserOutlined",
    FIRST_PASS: "CheckCircleOutlined",
    FIRST_FAIL: "CloseCircleOutlined",
    SECOND_INTERVIEW: "TeamOutlined",
    SECOND_PASS: "CheckCircleOutlined",
    SECOND_FAIL: "CloseCircleOutlined",
    THIRD_INTERVIEW: "CrownOutlined",
    THIRD_PASS: "CheckCircleOutlined",
    THIRD_FAIL: "CloseCircleOutlined",
    HR_INTERVIEW: "ContactsOutlined",
    HR_PASS: "CheckCircleOutlined",
    HR_FAIL: "CloseCircleOutlined",
    OFFER_WAITING: "GiftOutlined",
    REJECTED: "StopOutlined",
    OFFER_RECEIVED: "TrophyOutlined",
    OFFER_ACCEPTED: "CrownOutlined",
    PROCESS_FINISHED: "FlagOutlined",
}


def is_failed_status(status: str | None) -> bool:
    return status in _FAILED_STATUSES


def is_in_progress_status(status: str | None) -> bool:
    return status in _IN_PROGRESS_STATUSES


def is_passed_status(status: str | None) -> bool:
    return status in _PASSED_STATUSES


def is_terminal_status(status: str | None) -> bool:
    return status in _TERMINAL_STATUSES


def status_color(status: str | None) -> str:
    if is_failed_status(status):
        return "red"
    if is_in_progress_status(status):
        return "blue"
    if is_passed_status(status):
        return "green"
    return "default"


def status_category(status: str | None) -> str:
    if is_failed_status(status):
        return "已失败"
    if is_in_progress_status(status):
        return "进行中"
    return "已通过"


def status_icon(status: str | None) -> str:
    return _STATUS_ICONS.get(str(status or ""), "QuestionCircleOutlined")


def stage_rank(status: str | None) -> int:
    return _STAGE_RANKS.get(str(status or ""), 0)


def is_backward_transition(old_status: str | None, new_status: str | None) -> bool:
    return stage_rank(new_status) < stage_rank(old_status)


def is_implicit_direct_transition(old_status: str | None, new_status: str | None) -> bool:
    """Interview rounds may advance straight to the next round without a pass status."""
    nxt = _DIRECT_TRANSITIONS.get(str(old_status or ""))
    return nxt is not None and nxt == new_status
