from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel

from ..schemas.tasks import Priority, TaskStatus

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=50)
    email: str = Field(index=True, unique=True, max_length=100)
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)

class Contact(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    short_name: str = Field(max_length=100)
    full_name: str = Field(max_length=100)

class Task(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    task_name: str = Field(max_length=100)
    assignee: str
    due_date: datetime = Field(index=True)
    priority: Priority = Field(default=Priority.P3, index=True)
    status: TaskStatus = Field(default=TaskStatus.TODO, index=True)
    description: Optional[str] = Field(default=None, max_length=500)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    created_by: int = Field(foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)
