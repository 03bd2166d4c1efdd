from pydantic import BaseModel, EmailStr, Field, constr, validator
from typing import Optional, Literal, List
from datetime import datetime

ContactStatus = Literal["new", "in_progress", "resolved", "closed"]

class ContactForm(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    email: EmailStr
    institution: Optional[constr(strip_whitespace=True, max_length=255)] = None
    message: constr(strip_whitespace=True, min_length=1, max_length=2000)

    @validator("email")
    def email_length(cls, v):
        if len(v) > 255:
            raise ValueError("may not be greater than 255 characters")
        return v

class ContactResponseForm(BaseModel):
    response: constr(strip_whitespace=True, min_length=1, max_length=2000)

class ContactStatusForm(BaseModel):
    status: ContactStatus

class ContactOut(BaseModel):
    id: str = Field(alias="_id")
    name: str
    email: str
    institution: Optional[str] = None
    message: str
    status: ContactStatus
    is_read: bool
    admin_response: Optional[str] = None
    responded_at: Optional[datetime] = None
    responded_by: Optional[str] = None
    responded_by_name: Optional[str] = None
    has_response: bool = False
    created_at: datetime

class ContactStats(BaseModel):
    total: int
    new: int
    unread: int
    recent: int

class ContactsPage(BaseModel):
    total: int
    page: int
    page_size: int
    items: List[ContactOut]
    stats: ContactStats
