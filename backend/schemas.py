"""Request and response bodies for the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain import SortingType, StudyStatus, StudyType
from models import (
    DEFAULT_DISPLAY_TIME_SECONDS,
    MAX_DISPLAY_TIME_SECONDS,
    MIN_DISPLAY_TIME_SECONDS,
)

Title = Annotated[str, Field(min_length=1, max_length=255)]
Label = Annotated[str, Field(min_length=1, max_length=255)]
Percent = Annotated[float, Field(ge=0, le=100)]
DisplayTime = Annotated[int, Field(ge=MIN_DISPLAY_TIME_SECONDS, le=MAX_DISPLAY_TIME_SECONDS)]


class StudyCreate(BaseModel):
    title: Title
    description: Optional[str] = None
    type: StudyType
    sorting_type: Optional[SortingType] = None

    @model_validator(mode="after")
    def default_sorting_type(self) -> StudyCreate:
        if self.type is StudyType.CARD_SORTING:
            if self.sorting_type is None:
                self.sorting_type = SortingType.OPEN
        elif self.sorting_type is not None:
            raise ValueError("sorting_type only applies to card sorting studies")
        return self


class StudyUpdate(BaseModel):
    title: Optional[Title] = None
    description: Optional[str] = None
    status: Optional[StudyStatus] = None
    sorting_type: Optional[SortingType] = None


class StudyResponse(BaseModel):
    id: str
    title: str
    description: Optional[str]
    type: StudyType
    status: StudyStatus
    sorting_type: Optional[SortingType]
    created_at: datetime
    participant_count: int
    completed_count: int
    content_locked: bool


class CardCreate(BaseModel):
    label: Label
    description: Optional[str] = None


class CardUpdate(BaseModel):
    label: Optional[Label] = None
    description: Optional[str] = None


class CardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    study_id: str
    label: str
    description: Optional[str]
    order: int


class CategoryCreate(BaseModel):
    name: Label


class CategoryUpdate(BaseModel):
    name: Optional[Label] = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    study_id: str
    name: str
    order: int
    is_user_created: bool


class TreeNodeCreate(BaseModel):
    label: Label
    parent_id: Optional[str] = None


class TreeNodeUpdate(BaseModel):
    label: Optional[Label] = None


class TreeNodeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    study_id: str
    label: str
    parent_id: Optional[str]
    order: int


class TaskCreate(BaseModel):
    question: str = Field(min_length=1)
    correct_node_id: Optional[str] = None
    image_url: Optional[str] = None
    display_time_seconds: DisplayTime = DEFAULT_DISPLAY_TIME_SECONDS


class TaskUpdate(BaseModel):
    question: Optional[str] = Field(default=None, min_length=1)
    correct_node_id: Optional[str] = None
    image_url: Optional[str] = None
    display_time_seconds: Optional[DisplayTime] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    study_id: str
    question: str
    correct_node_id: Optional[str]
    image_url: Optional[str]
    display_time_seconds: int
    order: int


class ReorderRequest(BaseModel):
    ids: list[str] = Field(min_length=1)


class PublicTaskResponse(BaseModel):
    id: str
    question: str
    image_url: Optional[str]
    display_time_seconds: int
    order: int


class PublicStudyResponse(BaseModel):
    id: str
    title: str
    description: Optional[str]
    type: StudyType
    sorting_type: Optional[SortingType]
    cards: list[CardResponse] = Field(default_factory=list)
    categories: list[CategoryResponse] = Field(default_factory=list)
    tree_nodes: list[TreeNodeResponse] = Field(default_factory=list)
    tasks: list[PublicTaskResponse] = Field(default_factory=list)


class ParticipantStartResponse(BaseModel):
    participant_id: str
    study_id: str
    started_at: datetime


class CardPlacementSubmit(BaseModel):
    card_id: str
    category_id: Optional[str] = None
    category_name: Optional[str] = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def require_category(self) -> CardPlacementSubmit:
        if self.category_id is None and not (self.category_name or "").strip():
            raise ValueError("A placement needs a category_id or a category_name")
        return self


class TreeTestAttemptSubmit(BaseModel):
    task_id: str
    selected_path: list[str] = Field(default_factory=list)
    selected_node_id: Optional[str] = None
    time_spent_ms: int = Field(ge=0)


class ClickSubmit(BaseModel):
    task_id: Optional[str] = None
    x: Optional[Percent] = None
    y: Optional[Percent] = None
    time_to_click_ms: Optional[int] = Field(default=None, ge=0)
    timed_out: bool = False

    @model_validator(mode="after")
    def require_coordinates(self) -> ClickSubmit:
        if self.timed_out:
            return self
        if self.x is None or self.y is None or self.time_to_click_ms is None:
            raise ValueError("x, y and time_to_click_ms are required unless timed_out is set")
        return self


class CardSortSubmission(BaseModel):
    type: Literal["CARD_SORTING"]
    participant_id: str
    results: list[CardPlacementSubmit]


class TreeTestSubmission(BaseModel):
    type: Literal["TREE_TESTING"]
    participant_id: str
    results: list[TreeTestAttemptSubmit]


class FirstClickSubmission(BaseModel):
    type: Literal["FIRST_CLICK"]
    participant_id: str
    results: list[ClickSubmit]


ResultSubmission = Union[CardSortSubmission, TreeTestSubmission, FirstClickSubmission]


class SubmissionResponse(BaseModel):
    participant_id: str
    completed_at: datetime
    result_count: int
    success: bool = True
