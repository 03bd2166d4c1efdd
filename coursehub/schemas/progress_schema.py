from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

class LessonRef(BaseModel):
    id: str
    title: Optional[str] = None
    slug: Optional[str] = None

class ProgressSummary(BaseModel):
    progress_percentage: int = 0
    status: str = "not_started"
    completed_lessons: List[str] = []
    time_spent: str = "0m"
    estimated_completion: int = 0

class CompleteLessonOut(ProgressSummary):
    next_lesson: Optional[LessonRef] = None

class NavigationOut(BaseModel):
    success: bool = True
    progress_data: ProgressSummary
    next_lesson_url: Optional[str] = None
    course_completed: bool = False
    course_url: Optional[str] = None

class TouchOut(BaseModel):
    success: bool = True
    last_accessed_at: Optional[datetime] = None

class MyCourseItem(BaseModel):
    id: str
    title: str
    description: str
    slug: str
    thumbnail: Optional[str] = None
    difficulty: str
    progress_percentage: int
    status: str
    started_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    total_lessons: int
    completed_lessons: int
    time_spent: str
    estimated_completion: int
    next_lesson: Optional[LessonRef] = None
    current_lesson: Optional[LessonRef] = None

class MyCoursesOut(BaseModel):
    enrolledCourses: List[MyCourseItem]
    flash: Optional[dict] = None
