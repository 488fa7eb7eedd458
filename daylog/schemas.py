from __future__ import annotations

from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field

from daylog.core.feedback import Goal


class EntrySavePayload(BaseModel):
    values: Dict[str, Any] = Field(default_factory=dict)


class SaveResponse(BaseModel):
    ok: bool = True
    operation: str
    date: str
    values: Dict[str, Any]


class CategoryResponse(BaseModel):
    key: str
    collection: str
    title: str
    instructions: str
    fields: List[Dict[str, Any]]


class MonthResponse(BaseModel):
    category: str
    month: str
    label: str
    weekdays: List[str]
    days: List[Dict[str, Any]]
    entries: List[Dict[str, Any]]


class DayFormResponse(BaseModel):
    category: str
    date: str
    has_entry: bool
    fields: List[Dict[str, Any]]
    updated_at: Optional[str] = None


class GoalPayload(BaseModel):
    goal: Goal


class GoalResponse(BaseModel):
    goal: Goal
    label: str
    helper: str


class FeedbackResponse(BaseModel):
    date: str
    goal: Goal
    feedback: Dict[str, Dict[str, str]]
