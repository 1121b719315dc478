from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session

from ...core.security import get_current_user
from ...db import crud
from ...db.models import User
from ...db.session import get_session
from ...schemas.contacts import ContactAlias, ContactOut

router = APIRouter(prefix="/contacts", tags=["contacts"])

@router.get("", response_model=List[ContactOut])
def list_all(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return crud.list_contacts(session, user.id)

@router.post("", response_model=List[ContactOut], status_code=status.HTTP_201_CREATED)
def add(body: List[ContactAlias], user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    if not body:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="At least one contact is required")
    return crud.add_contacts(session, user.id, body)

@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove(contact_id: int, user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    if not crud.delete_contact(session, user.id, contact_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
