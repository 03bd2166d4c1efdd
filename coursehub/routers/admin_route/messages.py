from fastapi import APIRouter, Depends, Query, Request, status
from pymongo.database import Database

from deps import get_db
from auth.dependencies import require_role
from services import contact_service
from services.forms import read_form
from schemas.contact_schema import ContactOut, ContactsPage

router = APIRouter(prefix="/admin/messages", tags=["admin"], dependencies=[Depends(require_role("admin"))])

@router.get("", response_model=ContactsPage)
async def list_messages(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Database = Depends(get_db),
):
    return await contact_service.list_contacts(db, page=page, page_size=page_size)

@router.get("/{contact_id}", response_model=ContactOut)
async def message_detail(contact_id: str, db: Database = Depends(get_db)):
    return await contact_service.contact_detail(db, contact_id=contact_id)

@router.post("/{contact_id}/respond", response_model=ContactOut)
async def respond(contact_id: str, request: Request, db: Database = Depends(get_db), admin=Depends(require_role("admin"))):
    values, _ = await read_form(request)
    return await contact_service.respond(db, contact_id=contact_id, responder_id=admin["_id"], values=values)

@router.put("/{contact_id}/status", response_model=ContactOut)
async def update_status(contact_id: str, request: Request, db: Database = Depends(get_db)):
    values, _ = await read_form(request)
    return await contact_service.update_status(db, contact_id=contact_id, values=values)

@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(contact_id: str, db: Database = Depends(get_db)):
    await contact_service.delete(db, contact_id=contact_id)
