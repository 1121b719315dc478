"""Turn the model's raw reply into schema-valid task candidates.

The reply is untrusted free text. ``decode_candidates`` turns it into a list of
JSON objects or an error result; ``normalize`` repairs each object field by field
so that every candidate it returns is valid. Repairs never fail the batch, they
only pull the candidate's confidence down.
"""
import json
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, time, timezone, tzinfo
from functools import reduce
from typing import Any, Iterable, Optional

from dateutil import parser as dtparser

from ..schemas.contacts import ContactAlias
from ..schemas.tasks import TASK_NAME_MAX, Priority, TaskCandidate

SENTINEL_TASK_NAME = "-"
DEFAULT_CONFIDENCE = 0.5
MISSING_NAME_CAP = 0.3
UNPARSABLE_DUE_DATE_CAP = 0.4
MISSING_DUE_DATE_CAP = 0.5

_FENCE = re.compile(r"^```[\w+-]*[ \t]*\n?(.*?)\n?[ \t]*```$", re.DOTALL)
_VALID_PRIORITIES = {p.value for p in Priority}


@dataclass(frozen=True)
class DecodeResult:
    candidates: list[dict] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def strip_code_fence(text: str) -> str:
    text = text.strip()
    m = _FENCE.match(text)
    return m.group(1).strip() if m else text


def decode_candidates(raw_text: str) -> DecodeResult:
    """Strict parse first, then the fence-stripped text. Never raises."""
    text = (raw_text or "").strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = json.loads(strip_code_fence(text))
        except json.JSONDecodeError as e:
            return DecodeResult(error=f"response is not valid JSON: {e.msg} (line {e.lineno} col {e.colno})")

    if not isinstance(data, list):
        return DecodeResult(error=f"response is not a JSON array (got {type(data).__name__})")
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            return DecodeResult(error=f"element {i} is not a JSON object (got {type(item).__name__})")
    return DecodeResult(candidates=data)


def end_of_day(tz: tzinfo, now: Optional[datetime] = None) -> datetime:
    """23:59:59.999 of the current civil day in ``tz``, as a UTC datetime."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local_day = now.astimezone(tz).date()
    eod = datetime.combine(local_day, time(23, 59, 59, 999000), tzinfo=tz)
    return eod.astimezone(timezone.utc)


# Field repairs. Each returns the repaired value and, where the field has one,
# the confidence cap that applies (None when nothing was wrong).

def repair_task_name(value: Any) -> tuple[str, Optional[float]]:
    if not isinstance(value, str) or not value.strip():
        return SENTINEL_TASK_NAME, MISSING_NAME_CAP
    return value.strip()[:TASK_NAME_MAX], None


def repair_assignee(value: Any, acting_user_name: str, contacts: Iterable[ContactAlias] = ()) -> str:
    if not isinstance(value, str) or not value.strip():
        return acting_user_name
    name = value.strip()
    for c in contacts:
        if c.short_name.casefold() == name.casefold():
            return c.full_name
    return name


def repair_priority(value: Any) -> Priority:
    if isinstance(value, str) and value in _VALID_PRIORITIES:
        return Priority(value)
    return Priority.P3


def repair_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    if not math.isfinite(value) or not 0.0 <= value <= 1.0:
        return DEFAULT_CONFIDENCE
    return float(value)


def repair_due_date(value: Any, *, tz: tzinfo, now: Optional[datetime] = None) -> tuple[datetime, Optional[float]]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return end_of_day(tz, now), MISSING_DUE_DATE_CAP

    parsed = _parse_due_date(value, tz=tz, now=now)
    if parsed is None:
        return end_of_day(tz, now), UNPARSABLE_DUE_DATE_CAP
    return parsed, None


def _parse_due_date(value: Any, *, tz: tzinfo, now: Optional[datetime]) -> Optional[datetime]:
    """The due date as a UTC datetime, or None when it cannot be read as one."""
    try:
        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            # epoch milliseconds
            if not math.isfinite(value):
                return None
            return datetime.fromtimestamp(value / 1000, timezone.utc)
        elif isinstance(value, str):
            eod = end_of_day(tz, now).astimezone(tz).replace(tzinfo=None)
            midnight = eod.replace(hour=0, minute=0, second=0, microsecond=0)
            dt = dtparser.parse(value.strip(), default=midnight)
            late = dtparser.parse(value.strip(), default=eod)
            # a bare date means the end of that day
            if dt.hour != late.hour:
                dt = late
        else:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=tz)
        # out-of-range years and offsets of a day or more fail here
        return dt.astimezone(timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


def _get(raw: dict, camel: str, snake: str) -> Any:
    return raw[camel] if camel in raw else raw.get(snake)


def normalize_candidate(
    raw: Any,
    acting_user_name: str,
    *,
    tz: tzinfo,
    now: Optional[datetime] = None,
    contacts: Iterable[ContactAlias] = (),
) -> TaskCandidate:
    if not isinstance(raw, dict):
        raw = {}

    task_name, name_cap = repair_task_name(_get(raw, "taskName", "task_name"))
    due_date, due_cap = repair_due_date(_get(raw, "dueDate", "due_date"), tz=tz, now=now)
    caps = [c for c in (name_cap, due_cap) if c is not None]
    confidence = reduce(min, caps, repair_confidence(raw.get("confidence")))

    return TaskCandidate(
        task_name=task_name,
        assignee=repair_assignee(raw.get("assignee"), acting_user_name, contacts),
        due_date=due_date,
        priority=repair_priority(raw.get("priority")),
        confidence=confidence,
    )


def normalize(
    raw_candidates: list,
    acting_user_name: str,
    *,
    tz: tzinfo,
    now: Optional[datetime] = None,
    contacts: Optional[Iterable[ContactAlias]] = None,
) -> list[TaskCandidate]:
    """Repair every raw element into a TaskCandidate, one output per input."""
    if not acting_user_name or not acting_user_name.strip():
        raise ValueError("acting_user_name must be a non-empty string")
    acting_user_name = acting_user_name.strip()
    contacts = list(contacts or [])
    # one clock reading for the whole batch
    now = now or datetime.now(timezone.utc)
    return [
        normalize_candidate(raw, acting_user_name, tz=tz, now=now, contacts=contacts)
        for raw in raw_candidates
    ]
