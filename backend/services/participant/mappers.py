"""Participant payloads to result rows, and study rows to the participant view.

Submissions are normalized and scored here, once, so stored rows already
carry the category naming and correctness that aggregation reads back.
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException

from domain import SortingType
from models import Card, CardSortResult, Category, ClickResult, Study, Task, TreeNode, TreeTestResult
from schemas import (
    CardPlacementSubmit,
    CardResponse,
    CategoryResponse,
    ClickSubmit,
    PublicStudyResponse,
    PublicTaskResponse,
    TreeNodeResponse,
    TreeTestAttemptSubmit,
)
from services.aggregation import TreeArena, build_timeout_click, score_selection
from services.aggregation.snapshot import CategoryRecord, StudyContent


def _invalid(detail: str) -> HTTPException:
    return HTTPException(status_code=400, detail=detail)


def _find_category(placement: CardPlacementSubmit, content: StudyContent) -> Optional[CategoryRecord]:
    category = content.categories_by_id.get(placement.category_id or "")
    if category is not None:
        return category
    # A predefined name sent without its id still refers to that category.
    name = (placement.category_name or "").strip()
    for candidate in content.categories:
        if candidate.name == name:
            return candidate
    return None


def build_card_sort_row(
    placement: CardPlacementSubmit,
    *,
    content: StudyContent,
    sorting_type: SortingType,
) -> CardSortResult:
    category = _find_category(placement, content)
    submitted_name = (placement.category_name or "").strip() or None

    if category is None:
        if submitted_name is None:
            raise _invalid(f"Card {placement.card_id} has no category")
        if sorting_type is SortingType.CLOSED:
            raise _invalid("Closed card sorts only accept the study's categories")
        return CardSortResult(card_id=placement.card_id, category_name=submitted_name)

    name = submitted_name or category.name
    if name == category.name:
        return CardSortResult(
            card_id=placement.card_id,
            category_id=category.id,
            category_name=name,
            original_category_name=category.name,
        )

    if sorting_type is not SortingType.HYBRID:
        raise _invalid("Only hybrid card sorts allow renaming categories")
    return CardSortResult(
        card_id=placement.card_id,
        category_id=None,
        category_name=name,
        original_category_name=category.name,
    )


def build_card_sort_rows(
    placements: list[CardPlacementSubmit],
    *,
    content: StudyContent,
    sorting_type: SortingType,
    require_complete: bool,
) -> list[CardSortResult]:
    placed: set[str] = set()
    rows: list[CardSortResult] = []
    for placement in placements:
        if placement.card_id not in content.cards_by_id:
            raise _invalid(f"Unknown card: {placement.card_id}")
        if placement.card_id in placed:
            raise _invalid(f"Card {placement.card_id} was placed more than once")
        placed.add(placement.card_id)
        rows.append(build_card_sort_row(placement, content=content, sorting_type=sorting_type))

    unplaced = len(content.cards_by_id.keys() - placed)
    if require_complete and unplaced:
        raise _invalid(f"{unplaced} card(s) were not placed")
    return rows


def build_tree_test_rows(
    attempts: list[TreeTestAttemptSubmit],
    *,
    content: StudyContent,
) -> list[TreeTestResult]:
    arena = TreeArena(content.tree_nodes)
    answered: set[str] = set()
    rows: list[TreeTestResult] = []
    for attempt in attempts:
        task = content.tasks_by_id.get(attempt.task_id)
        if task is None:
            raise _invalid(f"Unknown task: {attempt.task_id}")
        if attempt.task_id in answered:
            raise _invalid(f"Task {attempt.task_id} was answered more than once")
        answered.add(attempt.task_id)

        path = list(attempt.selected_path)
        unknown = [node_id for node_id in path if node_id not in arena]
        if attempt.selected_node_id is not None:
            if attempt.selected_node_id not in arena:
                unknown.append(attempt.selected_node_id)
            elif attempt.selected_node_id not in path:
                path.append(attempt.selected_node_id)
        if unknown:
            raise _invalid(f"Unknown tree node(s): {', '.join(unknown)}")

        rows.append(
            TreeTestResult(
                task_id=task.id,
                selected_path=path,
                selected_node_id=attempt.selected_node_id,
                # Scored against the correct node as configured right now.
                is_correct=score_selection(attempt.selected_node_id, task.correct_node_id),
                time_spent_ms=attempt.time_spent_ms,
            )
        )
    return rows


def build_click_rows(
    clicks: list[ClickSubmit],
    *,
    content: StudyContent,
) -> list[ClickResult]:
    rows: list[ClickResult] = []
    for click in clicks:
        task_id = click.task_id or content.first_task_id
        task = content.tasks_by_id.get(task_id) if task_id else None
        if task is None:
            raise _invalid(f"Unknown task: {click.task_id}")

        if click.timed_out:
            sentinel = build_timeout_click(task)
            rows.append(
                ClickResult(
                    task_id=task.id,
                    x=sentinel.x,
                    y=sentinel.y,
                    time_to_click_ms=sentinel.time_to_click_ms,
                    timed_out=True,
                )
            )
            continue

        rows.append(
            ClickResult(
                task_id=task.id,
                x=click.x,
                y=click.y,
                time_to_click_ms=click.time_to_click_ms,
            )
        )
    return rows


def build_public_task_response(task: Task) -> PublicTaskResponse:
    # The correct node stays server-side.
    return PublicTaskResponse(
        id=task.id,
        question=task.question,
        image_url=task.image_url,
        display_time_seconds=task.display_time_seconds,
        order=task.order,
    )


def build_public_study_response(
    study: Study,
    *,
    cards: list[Card],
    categories: list[Category],
    tree_nodes: list[TreeNode],
    tasks: list[Task],
) -> PublicStudyResponse:
    return PublicStudyResponse(
        id=study.id,
        title=study.title,
        description=study.description,
        type=study.type,
        sorting_type=study.sorting_type,
        cards=[CardResponse.model_validate(card) for card in cards],
        categories=[CategoryResponse.model_validate(category) for category in categories],
        tree_nodes=[TreeNodeResponse.model_validate(node) for node in tree_nodes],
        tasks=[build_public_task_response(task) for task in tasks],
    )
