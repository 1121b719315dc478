from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

TASK_NAME_MAX = 100
DESCRIPTION_MAX = 500

TaskName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=TASK_NAME_MAX)]
Assignee = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, max_length=DESCRIPTION_MAX)]
Confidence = Annotated[float, Field(ge=0.0, le=1.0)]


class Priority(str, Enum):
    """P1 is the most urgent. Members sort the same way as their names."""
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"
    P4 = "P4"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class SortField(str, Enum):
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    CREATED_AT = "createdAt"
    TASK_NAME = "taskName"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskCandidate(CamelModel):
    """A schema-valid task produced by extraction, not yet persisted."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    task_name: Annotated[str, StringConstraints(min_length=1, max_length=TASK_NAME_MAX)]
    assignee: Annotated[str, StringConstraints(min_length=1)]
    due_date: AwareDatetime
    priority: Priority = Priority.P3
    confidence: Confidence = 1.0


class TaskIn(CamelModel):
    task_name: TaskName
    assignee: Assignee
    due_date: AwareDatetime
    priority: Priority = Priority.P3
    status: TaskStatus = TaskStatus.TODO
    description: Optional[Description] = None
    confidence: Confidence = 1.0


class TaskUpdate(CamelModel):
    task_name: Optional[TaskName] = None
    assignee: Optional[Assignee] = None
    due_date: Optional[AwareDatetime] = None
    priority: Optional[Priority] = None
    status: Optional[TaskStatus] = None
    description: Optional[Description] = None
    confidence: Optional[Confidence] = None


class TasksCreateIn(CamelModel):
    tasks: list[TaskIn] = Field(min_length=1, max_length=50)


class TaskOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    task_name: str
    assignee: str
    due_date: datetime
    priority: Priority
    status: TaskStatus
    description: Optional[str] = None
    confidence: float
    created_by: int
    created_at: datetime
    updated_at: datetime

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        # SQLite drops tzinfo; everything is stored in UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_tasks: int
    has_next_page: bool
    has_prev_page: bool
    limit: int


class TaskPage(CamelModel):
    tasks: list[TaskOut]
    pagination: Pagination


class TasksCreated(CamelModel):
    tasks: list[TaskOut]
    total_created: int
    message: str


class ParseIn(BaseModel):
    text: str


class ParseOut(CamelModel):
    tasks: list[TaskCandidate]
    total_tasks: int
    message: str


class TaskStats(BaseModel):
    total: int
    priority: dict[str, int]
    status: dict[str, int]
