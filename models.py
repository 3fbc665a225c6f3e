"""
Request models for the journal API
Using Pydantic for validation of incoming JSON bodies
"""

from datetime import date as Date
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, ConfigDict


# ============================================================================
# Journal Entries
# ============================================================================

class JournalEntryBase(BaseModel):
    """Fields shared by create and update requests"""
    model_config = ConfigDict(extra='forbid')

    weather: Optional[str] = None
    mood: Optional[str] = None
    miles_traveled: Optional[float] = Field(None, ge=0)
    parking: Optional[str] = None
    dog_friendly: Optional[bool] = None
    paid_activity: Optional[bool] = None
    adult_tickets: Optional[str] = None
    child_tickets: Optional[str] = None
    other_tickets: Optional[str] = None
    pet_notes: Optional[str] = None
    tags: Optional[List[str]] = None
    photos: Optional[List[str]] = None  # presigned URLs or storage keys


class JournalEntryCreate(JournalEntryBase):
    """A new adventure write-up"""
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    date: Date
    location: str = Field(..., min_length=1)

    @field_validator('title', 'content', 'location')
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('must not be blank')
        return v


class JournalEntryUpdate(JournalEntryBase):
    """Partial update; only the fields provided are written"""
    title: Optional[str] = None
    content: Optional[str] = None
    date: Optional[Date] = None
    location: Optional[str] = None


# ============================================================================
# Comments & Likes
# ============================================================================

class CommentCreate(BaseModel):
    author_name: str
    comment_text: str

    @field_validator('author_name', 'comment_text')
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Author name and comment text are required')
        return v


class LikeToggle(BaseModel):
    user_id: str

    @field_validator('user_id')
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('User id is required')
        return v


# ============================================================================
# Stats & Milestones
# ============================================================================

class StatIncrement(BaseModel):
    increment: int = 1


class StatUpdate(BaseModel):
    value: int = Field(..., ge=0)


class MilestoneProgressUpdate(BaseModel):
    user_id: str
    milestone_id: str
    increment: int = 1
