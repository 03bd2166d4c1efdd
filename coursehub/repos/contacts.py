# repos/contacts.py
from datetime import datetime
from typing import Dict, Any, Optional, List, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from repos.helper import utcnow, to_object_id, stringify_id

def ensure_indexes(db: Database) -> None:
    db.contacts.create_index([("status", ASCENDING), ("is_read", ASCENDING)])
    db.contacts.create_index([("created_at", DESCENDING)])

def insert_contact(db: Database, data: Dict[str, Any]) -> Dict[str, Any]:
    now = utcnow()
    doc = {
        "name": data["name"],
        "email": data["email"],
        "institution": data.get("institution"),
        "message": data["message"],
        "status": "new",
        "is_read": False,
        "admin_response": None,
        "responded_at": None,
        "responded_by": None,
        "created_at": now,
        "updated_at": now,
    }
    result = db.contacts.insert_one(doc)
    doc["_id"] = str(result.inserted_id)
    return doc

def get_contact(db: Database, contact_id: str) -> Optional[Dict[str, Any]]:
    oid = to_object_id(contact_id)
    if oid is None:
        return None
    return stringify_id(db.contacts.find_one({"_id": oid}))

def update_contact(db: Database, contact_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    patch = {**patch, "updated_at": utcnow()}
    res = db.contacts.update_one({"_id": to_object_id(contact_id)}, {"$set": patch})
    if res.matched_count == 0:
        return None
    return get_contact(db, contact_id)

def delete_contact(db: Database, contact_id: str) -> bool:
    oid = to_object_id(contact_id)
    if oid is None:
        return False
    return db.contacts.delete_one({"_id": oid}).deleted_count > 0

def list_contacts_page(db: Database, *, page: int, page_size: int) -> Tuple[int, List[Dict[str, Any]]]:
    total = db.contacts.count_documents({})
    cursor = (
        db.contacts.find({})
        .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
        .skip((page - 1) * page_size)
        .limit(page_size)
    )
    return total, [stringify_id(doc) for doc in cursor]

def contact_stats(db: Database, recent_since: datetime) -> Dict[str, int]:
    return {
        "total": db.contacts.count_documents({}),
        "new": db.contacts.count_documents({"status": "new"}),
        "unread": db.contacts.count_documents({"is_read": False}),
        "recent": db.contacts.count_documents({"created_at": {"$gte": recent_since}}),
    }
