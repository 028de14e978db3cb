from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

from domain import SortingType, StudyStatus, StudyType
from models import (
    Card,
    CardSortResult,
    Category,
    ClickResult,
    Participant,
    Study,
    Task,
    TreeNode,
    TreeTestResult,
)
from services.aggregation.snapshot import (
    CardPlacement,
    CardRecord,
    CategoryRecord,
    ClickRecord,
    CompletedParticipant,
    StudyContent,
    StudyRecord,
    TaskRecord,
    TreeNodeRecord,
    TreeTestAttempt,
)


def _sorted_by_order(rows: Iterable):
    return sorted(rows, key=lambda row: row.order)


def build_study_record(study: Study) -> StudyRecord:
    return StudyRecord(
        id=study.id,
        title=study.title,
        type=StudyType(study.type),
        status=StudyStatus(study.status),
        sorting_type=SortingType(study.sorting_type) if study.sorting_type else None,
    )


def build_study_content(
    *,
    cards: Iterable[Card],
    categories: Iterable[Category],
    tree_nodes: Iterable[TreeNode],
    tasks: Iterable[Task],
) -> StudyContent:
    return StudyContent(
        cards=tuple(
            CardRecord(id=c.id, label=c.label, order=c.order) for c in _sorted_by_order(cards)
        ),
        categories=tuple(
            CategoryRecord(id=c.id, name=c.name, order=c.order, is_user_created=c.is_user_created)
            for c in _sorted_by_order(categories)
        ),
        tree_nodes=tuple(
            TreeNodeRecord(id=n.id, label=n.label, parent_id=n.parent_id, order=n.order)
            for n in _sorted_by_order(tree_nodes)
        ),
        tasks=tuple(
            TaskRecord(
                id=t.id,
                question=t.question,
                order=t.order,
                correct_node_id=t.correct_node_id,
                image_url=t.image_url,
                display_time_seconds=t.display_time_seconds,
            )
            for t in _sorted_by_order(tasks)
        ),
    )


def build_card_placement(row: CardSortResult) -> CardPlacement:
    return CardPlacement(
        card_id=row.card_id,
        category_id=row.category_id,
        category_name=row.category_name,
        original_category_name=row.original_category_name,
    )


def build_tree_test_attempt(row: TreeTestResult) -> TreeTestAttempt:
    return TreeTestAttempt(
        task_id=row.task_id,
        selected_path=tuple(row.selected_path or ()),
        selected_node_id=row.selected_node_id,
        is_correct=bool(row.is_correct),
        time_spent_ms=int(row.time_spent_ms),
    )


def build_click_record(row: ClickResult) -> ClickRecord:
    return ClickRecord(
        x=float(row.x),
        y=float(row.y),
        time_to_click_ms=int(row.time_to_click_ms),
        task_id=row.task_id,
        timed_out=bool(row.timed_out),
    )


def build_completed_participant(
    participant: Participant,
    *,
    card_sort_results: Iterable[CardSortResult] = (),
    tree_test_results: Iterable[TreeTestResult] = (),
    click_results: Iterable[ClickResult] = (),
) -> Optional[CompletedParticipant]:
    if participant.completed_at is None:
        return None
    return CompletedParticipant(
        id=participant.id,
        started_at=participant.started_at,
        completed_at=participant.completed_at,
        card_sort_results=tuple(build_card_placement(r) for r in card_sort_results),
        tree_test_results=tuple(build_tree_test_attempt(r) for r in tree_test_results),
        click_results=tuple(build_click_record(r) for r in click_results),
    )
