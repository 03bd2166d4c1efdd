from pydantic import BaseModel, Field, AnyHttpUrl, constr, conint, validator
from typing import List, Optional, Literal, Any
from datetime import datetime

# Keep IDs as str at the API boundary. Convert to ObjectId in the repo.
ID = constr(strip_whitespace=True, min_length=1)
RequiredText = constr(strip_whitespace=True, min_length=1)
Title = constr(strip_whitespace=True, min_length=1, max_length=255)

Difficulty = Literal["beginner", "intermediate", "advanced"]

class Resource(BaseModel):
    name: str
    path: str
    size: int
    type: Optional[str] = None

# ---------------------------
# Admin forms
# ---------------------------

class CourseForm(BaseModel):
    title: Title
    description: RequiredText
    slug: Title
    difficulty: Difficulty
    duration_weeks: conint(ge=1)
    time_commitment_hours: conint(ge=1)
    language: constr(strip_whitespace=True, min_length=1, max_length=50)
    learning_objectives: Optional[str] = None
    prerequisites: Optional[str] = None
    is_published: bool = False
    is_featured: bool = False
    order: int = 0
    category: constr(strip_whitespace=True, min_length=1, max_length=100) = "general"
    tags: List[str] = []

    @validator("tags", pre=True)
    def split_tags(cls, v):
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        return v

class LessonForm(BaseModel):
    title: Title
    slug: Title
    summary: Optional[str] = None
    content: RequiredText
    duration_minutes: conint(ge=1)
    order: conint(ge=1)
    is_published: bool = False
    video_url: Optional[AnyHttpUrl] = None

class LessonCreateForm(LessonForm):
    course_id: ID

# ---------------------------
# Public payloads
# ---------------------------

class LessonSummaryOut(BaseModel):
    id: str
    title: str
    slug: str
    summary: Optional[str] = None
    duration_minutes: int
    order: int
    is_completed: bool = False

class CourseCardOut(BaseModel):
    id: str
    title: str
    description: str
    slug: str
    thumbnail: Optional[str] = None
    difficulty: str
    duration_weeks: int
    time_commitment_hours: int
    language: Optional[str] = None
    learning_objectives: Optional[str] = None
    prerequisites: Optional[str] = None
    is_featured: bool = False
    category: Optional[str] = None
    tags: List[str] = []
    lessons: List[LessonSummaryOut] = []
    total_lessons: int = 0
    total_duration: int = 0
    duration: str
    user_progress: Optional[Any] = None

class CourseCatalogOut(BaseModel):
    featuredCourses: List[CourseCardOut]
    allCourses: List[CourseCardOut]

class EnrollmentOut(BaseModel):
    enrolled: bool
    already_enrolled: bool = False
    message: str
    course_url: str

class CourseAdminOut(BaseModel):
    id: str = Field(alias="_id")
    title: str
    description: str
    slug: str
    thumbnail: Optional[str] = None
    difficulty: str
    duration_weeks: int
    time_commitment_hours: int
    language: str
    learning_objectives: Optional[str] = None
    prerequisites: Optional[str] = None
    is_published: bool
    is_featured: bool
    order: int = 0
    category: Optional[str] = None
    tags: List[str] = []
    created_at: datetime
    updated_at: datetime

class LessonAdminOut(BaseModel):
    id: str = Field(alias="_id")
    course_id: str
    title: str
    slug: str
    summary: Optional[str] = None
    content: str
    duration_minutes: int
    order: int
    is_published: bool
    video_url: Optional[str] = None
    resources: List[Resource] = []
