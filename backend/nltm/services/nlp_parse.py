import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable, Iterable, Optional

from langchain_core.prompts import PromptTemplate

from ..core.config import settings
from ..schemas.contacts import ContactAlias
from ..schemas.tasks import TaskCandidate
from . import provider
from .normalizer import decode_candidates, normalize

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = PromptTemplate.from_template(
    """SYSTEM INSTRUCTION: You are a task extraction assistant. You identify tasks in natural-language text and structure them according to the rules below.

USER CONTEXT: The current date and time is {current_time}. The logged-in user is {user_name}. {contacts_info}

USER INPUT: {text}

REQUIRED OUTPUT FORMAT: a JSON array where each item is one task object with exactly these properties:
- taskName: string (concise action, max 100 chars)
- assignee: string (defaults to the logged-in user if nobody is named)
- dueDate: string (ISO 8601 in UTC, converted from a {zone_name} interpretation)
- priority: string, one of P1, P2, P3, P4 (default P3)
- confidence: number between 0.0 and 1.0 describing how sure you are about this task

PARSING RULES:

1. TASK NAME
   - A concise phrase with the core action and its subject, at most 100 characters.
   - Use "-" if the core action is unclear.
   - Examples: "Finish presentation slides", "Call with marketing team".

2. ASSIGNEE
   - Default to "{user_name}" when no assignee is mentioned.
   - Match mentioned names against the known contacts and use the full name when found.
   - Otherwise use the name as mentioned.

3. DUE DATE
   - Interpret every date and time in the input as {zone_name} time, then convert to ISO 8601 UTC.
   - If only a date is given, the time is 23:59:59 {zone_name}.
   - "noon" means 12:00:00 and "midnight" means 00:00:00, both {zone_name}.
   - Resolve relative dates ("tomorrow", "next Monday") from {current_time}.
   - If no date is mentioned at all, omit dueDate.

4. PRIORITY
   - P1: critical or urgent (urgent, ASAP, critical, top priority)
   - P2: high importance (important, high priority)
   - P3: normal tasks (default)
   - P4: low priority (low priority, when you have time, someday)

5. CONFIDENCE
   - 0.8 to 1.0: clear, unambiguous task
   - 0.5 to 0.79: some ambiguity
   - below 0.5: needs manual confirmation

Return ONLY the JSON array, with no commentary and no markdown formatting. Return [] if the text contains no tasks."""
)


class ExtractionFailed(Exception):
    """Extraction produced nothing usable. ``cause`` is the underlying error."""

    def __init__(self, cause):
        self.cause = cause
        super().__init__(f"Failed to parse tasks: {cause}")


def format_contacts(contacts: Iterable[ContactAlias]) -> str:
    contacts = list(contacts)
    if not contacts:
        return "No contacts available."
    return "Known contacts: " + ", ".join(f"{c.short_name} ({c.full_name})" for c in contacts) + "."


def build_prompt(
    text: str,
    acting_user_name: str,
    contacts: Iterable[ContactAlias] = (),
    *,
    tz: tzinfo,
    now: Optional[datetime] = None,
) -> str:
    now = (now or datetime.now(timezone.utc)).astimezone(tz)
    zone_name = getattr(tz, "key", None) or now.tzname()
    return EXTRACTION_PROMPT.format(
        current_time=now.strftime("%Y-%m-%d %H:%M:%S %Z") + f" ({zone_name}, UTC{now.strftime('%z')})",
        zone_name=zone_name,
        user_name=acting_user_name,
        contacts_info=format_contacts(contacts),
        text=text,
    )


def extract_tasks(
    text: str,
    acting_user_name: str,
    contacts: Iterable[ContactAlias] = (),
    *,
    tz: Optional[tzinfo] = None,
    now: Optional[datetime] = None,
    generate: Optional[Callable[[str], str]] = None,
) -> list[TaskCandidate]:
    """Prompt the completion service with ``text`` and return repaired candidates.

    Makes exactly one completion call. A failed call or a reply that is not a JSON
    array of objects raises ExtractionFailed; defects inside individual objects are
    repaired by the normalizer instead.
    """
    if not text or not text.strip():
        raise ValueError("text must be a non-empty string")
    tz = tz or settings.reference_tz()
    now = now or datetime.now(timezone.utc)
    contacts = list(contacts)
    generate = generate or provider.generate

    prompt = build_prompt(text, acting_user_name, contacts, tz=tz, now=now)
    try:
        raw = generate(prompt)
    except Exception as e:
        logger.warning("completion call failed: %r", e)
        raise ExtractionFailed(e) from e

    result = decode_candidates(raw)
    if not result.ok:
        logger.warning("undecodable completion (%s); raw=%.500r", result.error, raw)
        raise ExtractionFailed(ValueError(result.error))

    tasks = normalize(result.candidates, acting_user_name, tz=tz, now=now, contacts=contacts)
    logger.info("extracted %d task(s) for %s", len(tasks), acting_user_name)
    return tasks
