"""Immutable inputs for the results engine.

A `StudySnapshot` is everything the aggregation functions need to know about a
study: its settings, its content and the results of its completed
participants. Snapshots are built by the result stores and never mutated, so
running any aggregation twice over the same snapshot yields the same output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from typing import Optional

from domain import ALL_FILTER, SortingType, StudyStatus, StudyType

MISSING_CARD_LABEL = "Unknown card"
MISSING_TASK_LABEL = "Unknown task"
NO_SELECTION_LABEL = "No selection"
NOT_SPECIFIED_LABEL = "Not specified"


@dataclass(frozen=True)
class StudyRecord:
    id: str
    title: str
    type: StudyType
    status: StudyStatus = StudyStatus.DRAFT
    sorting_type: Optional[SortingType] = None


@dataclass(frozen=True)
class CardRecord:
    id: str
    label: str
    order: int = 0


@dataclass(frozen=True)
class CategoryRecord:
    id: str
    name: str
    order: int = 0
    is_user_created: bool = False


@dataclass(frozen=True)
class TreeNodeRecord:
    id: str
    label: str
    parent_id: Optional[str] = None
    order: int = 0


@dataclass(frozen=True)
class TaskRecord:
    id: str
    question: str
    order: int = 0
    correct_node_id: Optional[str] = None
    image_url: Optional[str] = None
    display_time_seconds: int = 5


@dataclass(frozen=True)
class CardPlacement:
    card_id: str
    category_name: Optional[str]
    category_id: Optional[str] = None
    original_category_name: Optional[str] = None


@dataclass(frozen=True)
class TreeTestAttempt:
    task_id: str
    selected_path: tuple[str, ...]
    selected_node_id: Optional[str]
    is_correct: bool
    time_spent_ms: int


@dataclass(frozen=True)
class ClickRecord:
    x: float
    y: float
    time_to_click_ms: int
    task_id: Optional[str] = None
    timed_out: bool = False


@dataclass(frozen=True)
class CompletedParticipant:
    id: str
    started_at: datetime
    completed_at: datetime
    card_sort_results: tuple[CardPlacement, ...] = ()
    tree_test_results: tuple[TreeTestAttempt, ...] = ()
    click_results: tuple[ClickRecord, ...] = ()


@dataclass(frozen=True)
class StudyContent:
    cards: tuple[CardRecord, ...] = ()
    categories: tuple[CategoryRecord, ...] = ()
    tree_nodes: tuple[TreeNodeRecord, ...] = ()
    tasks: tuple[TaskRecord, ...] = ()

    @cached_property
    def cards_by_id(self) -> dict[str, CardRecord]:
        return {card.id: card for card in self.cards}

    @cached_property
    def categories_by_id(self) -> dict[str, CategoryRecord]:
        return {category.id: category for category in self.categories}

    @cached_property
    def tasks_by_id(self) -> dict[str, TaskRecord]:
        return {task.id: task for task in self.tasks}

    @cached_property
    def predefined_names(self) -> frozenset[str]:
        return frozenset(c.name for c in self.categories if not c.is_user_created)

    @property
    def first_task_id(self) -> Optional[str]:
        return self.tasks[0].id if self.tasks else None

    def card_label(self, card_id: str) -> str:
        card = self.cards_by_id.get(card_id)
        return card.label if card else MISSING_CARD_LABEL

    def task_question(self, task_id: Optional[str]) -> str:
        task = self.tasks_by_id.get(task_id) if task_id else None
        return task.question if task else MISSING_TASK_LABEL

    def placement_category_name(self, placement: CardPlacement) -> Optional[str]:
        """Name the placement was filed under, falling back to its predefined category."""
        if placement.category_name:
            return placement.category_name
        category = self.categories_by_id.get(placement.category_id or "")
        return category.name if category else None


@dataclass(frozen=True)
class StudySnapshot:
    study: StudyRecord
    content: StudyContent = field(default_factory=StudyContent)
    participants: tuple[CompletedParticipant, ...] = ()

    @cached_property
    def participant_numbers(self) -> dict[str, int]:
        # 1-based, in fetch order.
        return {p.id: index for index, p in enumerate(self.participants, start=1)}

    def participant_number(self, participant_id: str) -> Optional[int]:
        return self.participant_numbers.get(participant_id)

    def select_participants(self, participant_id: str = ALL_FILTER) -> tuple[CompletedParticipant, ...]:
        if participant_id == ALL_FILTER:
            return self.participants
        return tuple(p for p in self.participants if p.id == participant_id)
