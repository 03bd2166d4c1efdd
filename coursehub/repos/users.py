# repos/users.py
from datetime import datetime
from typing import Optional, Tuple, List, Dict, Any

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from passlib.context import CryptContext

from repos.helper import utcnow, to_object_id, stringify_id, count_by_month

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ROLES = ("learner", "admin")

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)

def create_user(db: Database, email: str, password: str, name: str, role: str = "learner") -> dict:
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    if db.users.find_one({"email": email}):
        raise ValueError("Email already registered")
    user = {
        "email": email,
        "hashed_password": hash_password(password),
        "name": name,
        "role": role,
        "created_at": utcnow(),
    }
    result = db.users.insert_one(user)
    user["_id"] = str(result.inserted_id)
    return user

def get_user_by_email(db: Database, email: str) -> Optional[dict]:
    return db.users.find_one({"email": email})

def get_user_by_id(db: Database, user_id: str) -> Optional[dict]:
    oid = to_object_id(user_id)
    if oid is None:
        return None
    return db.users.find_one({"_id": oid})

def delete_user(db: Database, user_id: str) -> bool:
    res = db.users.delete_one({"_id": to_object_id(user_id)})
    if res.deleted_count == 0:
        return False
    db.user_course_progress.delete_many({"user_id": user_id})
    db.contacts.update_many({"responded_by": user_id}, {"$set": {"responded_by": None}})
    return True

def count_users(db: Database) -> int:
    return db.users.count_documents({})

def recent_users(db: Database, limit: int = 5) -> List[Dict[str, Any]]:
    cursor = db.users.find({}, {"hashed_password": 0}).sort([("created_at", DESCENDING), ("_id", DESCENDING)]).limit(limit)
    return [stringify_id(doc) for doc in cursor]

def list_users_page(db: Database, *, page: int, page_size: int) -> Tuple[int, List[Dict[str, Any]]]:
    total = db.users.count_documents({})
    cursor = (
        db.users.find({}, {"hashed_password": 0})
        .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
        .skip((page - 1) * page_size)
        .limit(page_size)
    )
    items = []
    for doc in cursor:
        user_id = str(doc["_id"])
        doc = stringify_id(doc)
        doc["course_progress_count"] = db.user_course_progress.count_documents({"user_id": user_id})
        items.append(doc)
    return total, items

def registrations_by_month(db: Database, since: datetime) -> List[Dict[str, Any]]:
    return count_by_month(db.users, "created_at", since)

def ensure_indexes(db: Database):
    db.users.create_index([("email", ASCENDING)], unique=True)
    db.users.create_index([("created_at", DESCENDING)])
