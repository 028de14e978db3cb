"""Enumerations shared by the persistence layer and the results engine."""

from __future__ import annotations

from enum import Enum


class StudyType(str, Enum):
    CARD_SORTING = "CARD_SORTING"
    TREE_TESTING = "TREE_TESTING"
    FIRST_CLICK = "FIRST_CLICK"


class StudyStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class SortingType(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    HYBRID = "HYBRID"


class CategoryType(str, Enum):
    PREDEFINED = "predefined"
    USER_CREATED = "user-created"


class NullSelectionPolicy(str, Enum):
    """How a tree-test attempt without a selected node enters the aggregates."""

    COUNT_AS_INCORRECT = "count_as_incorrect"
    EXCLUDE = "exclude"


class ContentKind(str, Enum):
    CARDS = "cards"
    CATEGORIES = "categories"
    TREE_NODES = "tree-nodes"
    TASKS = "tasks"


ALL_FILTER = "all"
