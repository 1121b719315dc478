import math
from typing import Iterable, List, Optional

from sqlmodel import Session, func, select

from ..schemas.contacts import ContactAlias
from ..schemas.tasks import Priority, SortField, SortOrder, TaskStatus
from .models import Contact, Task, User, utcnow

SORT_COLUMNS = {
    SortField.DUE_DATE: Task.due_date,
    SortField.PRIORITY: Task.priority,
    SortField.CREATED_AT: Task.created_at,
    SortField.TASK_NAME: Task.task_name,
}

# users

def create_user(session: Session, user: User) -> User:
    session.add(user)
    session.commit()
    session.refresh(user)
    return user

def get_user(session: Session, user_id: int) -> Optional[User]:
    return session.get(User, user_id)

def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email.strip().lower())).first()

# contacts

def list_contacts(session: Session, user_id: int) -> List[Contact]:
    return session.exec(select(Contact).where(Contact.user_id == user_id).order_by(Contact.short_name)).all()

def add_contacts(session: Session, user_id: int, contacts: Iterable[ContactAlias]) -> List[Contact]:
    rows = [Contact(user_id=user_id, short_name=c.short_name, full_name=c.full_name) for c in contacts]
    session.add_all(rows)
    session.commit()
    for row in rows:
        session.refresh(row)
    return rows

def delete_contact(session: Session, user_id: int, contact_id: int) -> bool:
    contact = session.exec(select(Contact).where(Contact.id == contact_id, Contact.user_id == user_id)).first()
    if contact is None:
        return False
    session.delete(contact)
    session.commit()
    return True

# tasks

def create_tasks(session: Session, tasks: List[Task]) -> List[Task]:
    session.add_all(tasks)
    session.commit()
    for t in tasks:
        session.refresh(t)
    return tasks

def get_task(session: Session, user_id: int, task_id: int) -> Optional[Task]:
    return session.exec(select(Task).where(Task.id == task_id, Task.created_by == user_id)).first()

def list_tasks(
    session: Session,
    user_id: int,
    *,
    priority: Optional[Priority] = None,
    status: Optional[TaskStatus] = None,
    sort_by: SortField = SortField.DUE_DATE,
    sort_order: SortOrder = SortOrder.ASC,
    page: int = 1,
    limit: int = 20,
) -> tuple[List[Task], int]:
    filters = [Task.created_by == user_id]
    if priority is not None:
        filters.append(Task.priority == priority)
    if status is not None:
        filters.append(Task.status == status)

    col = SORT_COLUMNS[sort_by]
    order = col.asc() if sort_order == SortOrder.ASC else col.desc()
    stmt = select(Task).where(*filters).order_by(order, Task.id).offset((page - 1) * limit).limit(limit)
    total = session.exec(select(func.count()).select_from(Task).where(*filters)).one()
    return session.exec(stmt).all(), total

def update_task(session: Session, task: Task, changes: dict) -> Task:
    for key, value in changes.items():
        setattr(task, key, value)
    task.updated_at = utcnow()
    session.add(task)
    session.commit()
    session.refresh(task)
    return task

def delete_task(session: Session, task: Task) -> None:
    session.delete(task)
    session.commit()

def task_stats(session: Session, user_id: int) -> dict:
    by_priority = session.exec(
        select(Task.priority, func.count()).where(Task.created_by == user_id).group_by(Task.priority)
    ).all()
    by_status = session.exec(
        select(Task.status, func.count()).where(Task.created_by == user_id).group_by(Task.status)
    ).all()

    stats = {
        "total": 0,
        "priority": {p.value: 0 for p in Priority},
        "status": {s.value: 0 for s in TaskStatus},
    }
    for p, n in by_priority:
        stats["priority"][Priority(p).value] = n
        stats["total"] += n
    for s, n in by_status:
        stats["status"][TaskStatus(s).value] = n
    return stats

def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
