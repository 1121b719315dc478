import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import ValidationError
from sqlmodel import Session
from starlette.datastructures import UploadFile

from ...core.config import settings
from ...core.security import get_current_user
from ...db import crud
from ...db.models import Task, User
from ...db.session import get_session
from ...schemas.contacts import ContactAlias
from ...schemas.tasks import (
    ParseIn, ParseOut, Priority, SortField, SortOrder, TaskCandidate, TaskOut, TaskPage,
    Pagination, TasksCreated, TasksCreateIn, TaskStats, TaskStatus, TaskUpdate,
)
from ...services import nlp_parse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])

ALLOWED_UPLOAD_TYPES = {"text/plain", "text/markdown", "application/octet-stream"}
ALLOWED_UPLOAD_EXTENSIONS = (".txt", ".md")

def _utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc)

async def _read_upload(upload: UploadFile) -> str:
    filename = (upload.filename or "").lower()
    ctype = (upload.content_type or "").split(";")[0].strip()
    if ctype not in ALLOWED_UPLOAD_TYPES and not filename.endswith(ALLOWED_UPLOAD_EXTENSIONS):
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                            detail="Only .txt and .md files are allowed")
    data = await upload.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                            detail=f"File too large. Maximum size is {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB.")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to read file content")

async def read_parse_text(request: Request) -> str:
    """Text to parse, from a JSON body or an uploaded ``file`` form field."""
    ctype = request.headers.get("content-type", "")
    if ctype.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        text = await _read_upload(upload) if isinstance(upload, UploadFile) else form.get("text")
    else:
        try:
            text = ParseIn.model_validate(await request.json()).text
        except (ValueError, ValidationError):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                detail="Request body must be JSON with a 'text' field")

    if not isinstance(text, str) or not text.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Text input is required")
    if len(text) > settings.MAX_TEXT_CHARS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail=f"Text input cannot be more than {settings.MAX_TEXT_CHARS:,} characters")
    return text

async def run_extraction(text: str, user: User, session: Session) -> list[TaskCandidate]:
    contacts = [ContactAlias(short_name=c.short_name, full_name=c.full_name)
                for c in crud.list_contacts(session, user.id)]
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(nlp_parse.extract_tasks, text, user.name, contacts, tz=settings.reference_tz()),
            timeout=settings.EXTRACTION_TIMEOUT_S,
        )
    except asyncio.TimeoutError:
        logger.warning("extraction for user %s timed out after %ss", user.id, settings.EXTRACTION_TIMEOUT_S)
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                            detail="Task extraction timed out. Please try again.")

def _task_from_candidate(c: TaskCandidate, user_id: int) -> Task:
    return Task(
        task_name=c.task_name,
        assignee=c.assignee,
        due_date=_utc(c.due_date),
        priority=c.priority,
        confidence=c.confidence,
        created_by=user_id,
    )

@router.post("/parse", response_model=ParseOut)
async def parse(request: Request, user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    text = await read_parse_text(request)
    candidates = await run_extraction(text, user, session)
    message = (f"Extracted {len(candidates)} task(s) from text" if candidates
               else "No tasks could be extracted from the text")
    return ParseOut(tasks=candidates, total_tasks=len(candidates), message=message)

@router.post("/parse-and-create", response_model=TasksCreated, status_code=status.HTTP_201_CREATED)
async def parse_and_create(request: Request, response: Response,
                           user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    text = await read_parse_text(request)
    candidates = await run_extraction(text, user, session)
    if not candidates:
        response.status_code = status.HTTP_200_OK
        return TasksCreated(tasks=[], total_created=0, message="No tasks could be extracted from the text")
    created = crud.create_tasks(session, [_task_from_candidate(c, user.id) for c in candidates])
    logger.info("user %s created %d task(s) from text", user.id, len(created))
    return TasksCreated(
        tasks=[TaskOut.model_validate(t) for t in created],
        total_created=len(created),
        message=f"Successfully parsed and created {len(created)} task(s)",
    )

@router.post("", response_model=TasksCreated, status_code=status.HTTP_201_CREATED)
def create(body: TasksCreateIn, user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    rows = []
    for t in body.tasks:
        data = t.model_dump()
        data["due_date"] = _utc(t.due_date)
        rows.append(Task(**data, created_by=user.id))
    created = crud.create_tasks(session, rows)
    return TasksCreated(
        tasks=[TaskOut.model_validate(t) for t in created],
        total_created=len(created),
        message=f"Successfully created {len(created)} task(s)",
    )

@router.get("", response_model=TaskPage)
def list_all(
    sort_by: SortField = Query(SortField.DUE_DATE, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.ASC, alias="sortOrder"),
    priority: Optional[Priority] = None,
    task_status: Optional[TaskStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    tasks, total = crud.list_tasks(
        session, user.id, priority=priority, status=task_status,
        sort_by=sort_by, sort_order=sort_order, page=page, limit=limit,
    )
    pages = crud.total_pages(total, limit)
    return TaskPage(
        tasks=[TaskOut.model_validate(t) for t in tasks],
        pagination=Pagination(
            current_page=page,
            total_pages=pages,
            total_tasks=total,
            has_next_page=page < pages,
            has_prev_page=page > 1,
            limit=limit,
        ),
    )

@router.get("/stats", response_model=TaskStats)
def stats(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return crud.task_stats(session, user.id)

def _owned_task(session: Session, user: User, task_id: int) -> Task:
    task = crud.get_task(session, user.id, task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                            detail="Task not found or you don't have permission to access it")
    return task

@router.get("/{task_id}", response_model=TaskOut)
def get_one(task_id: int, user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return _owned_task(session, user, task_id)

@router.put("/{task_id}", response_model=TaskOut)
def update(task_id: int, body: TaskUpdate, user: User = Depends(get_current_user),
           session: Session = Depends(get_session)):
    task = _owned_task(session, user, task_id)
    # only description may be cleared
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k == "description"}
    if "due_date" in changes:
        changes["due_date"] = _utc(changes["due_date"])
    return crud.update_task(session, task, changes)

@router.delete("/{task_id}", response_model=TaskOut)
def delete(task_id: int, user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    task = _owned_task(session, user, task_id)
    out = TaskOut.model_validate(task)
    crud.delete_task(session, task)
    return out
