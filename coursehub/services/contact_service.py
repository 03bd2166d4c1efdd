# services/contact_service.py
import logging
from datetime import timedelta
from typing import Dict, Any

from pymongo.database import Database
from fastapi.concurrency import run_in_threadpool

from repos import contacts as repo
from repos import users as user_repo
from repos.helper import utcnow
from schemas.contact_schema import ContactForm, ContactResponseForm, ContactStatusForm
from services import forms
from services.exceptions import NotFoundError, OperationFailedError

logger = logging.getLogger(__name__)

RECENT_DAYS = 7

SUBMITTED_MESSAGE = "Thank you for your message! We will get back to you soon."
SUBMIT_FAILED_MESSAGE = "Sorry, there was an error sending your message. Please try again."


def _present(db: Database, contact: Dict[str, Any]) -> Dict[str, Any]:
    responder = None
    if contact.get("responded_by"):
        responder = user_repo.get_user_by_id(db, contact["responded_by"])
    return {
        **contact,
        "responded_by_name": responder.get("name") if responder else None,
        "has_response": bool(contact.get("admin_response")),
    }

async def submit(db: Database, values: Dict[str, Any]) -> Dict[str, Any]:
    """Store a public contact message.

    Validation errors propagate as ``FormValidationError``; anything else is
    logged and surfaced as ``OperationFailedError`` with a generic message.
    """
    form = forms.validate_form(ContactForm, values)
    try:
        doc = await run_in_threadpool(repo.insert_contact, db, form.model_dump())
    except Exception as e:
        logger.error(f"Contact form submission failed for {form.email}: {e}", exc_info=True)
        raise OperationFailedError(SUBMIT_FAILED_MESSAGE) from e
    logger.info(f"Contact message {doc['_id']} received from {doc['email']}")
    return doc

# ---------------------------
# Admin
# ---------------------------

def _page(db: Database, page: int, page_size: int) -> Dict[str, Any]:
    total, items = repo.list_contacts_page(db, page=page, page_size=page_size)
    return {
        "total": total,
        "page": page,
        "page_size": page_size,
        "items": [_present(db, c) for c in items],
        "stats": repo.contact_stats(db, utcnow() - timedelta(days=RECENT_DAYS)),
    }

async def list_contacts(db: Database, *, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
    return await run_in_threadpool(_page, db, page, page_size)

def _detail(db: Database, contact_id: str) -> Dict[str, Any]:
    contact = repo.get_contact(db, contact_id)
    if not contact:
        raise NotFoundError("Contact message not found")
    if not contact.get("is_read"):
        contact = repo.update_contact(db, contact_id, {"is_read": True})
    return _present(db, contact)

async def contact_detail(db: Database, *, contact_id: str) -> Dict[str, Any]:
    """Viewing a message marks it read."""
    return await run_in_threadpool(_detail, db, contact_id)

async def _update(db: Database, contact_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    contact = await run_in_threadpool(repo.update_contact, db, contact_id, patch)
    if not contact:
        raise NotFoundError("Contact message not found")
    return await run_in_threadpool(_present, db, contact)

async def respond(db: Database, *, contact_id: str, responder_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
    form = forms.validate_form(ContactResponseForm, values)
    contact = await _update(db, contact_id, {
        "admin_response": form.response,
        "responded_at": utcnow(),
        "responded_by": responder_id,
        "status": "resolved",
        "is_read": True,
    })
    logger.info(f"Contact message {contact_id} answered by {responder_id}")
    return contact

async def update_status(db: Database, *, contact_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
    form = forms.validate_form(ContactStatusForm, values)
    return await _update(db, contact_id, {"status": form.status})

async def delete(db: Database, *, contact_id: str) -> None:
    if not await run_in_threadpool(repo.delete_contact, db, contact_id):
        raise NotFoundError("Contact message not found")
    logger.info(f"Contact message {contact_id} deleted")
