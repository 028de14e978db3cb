from __future__ import annotations

from dataclasses import asdict
from typing import Any, Optional

from pydantic import BaseModel

from domain import ContentKind
from models import Study
from schemas import (
    CardResponse,
    CategoryResponse,
    StudyResponse,
    TaskResponse,
    TreeNodeResponse,
)
from services.aggregation import (
    CategoryGroup,
    ClickPoint,
    HeatmapPlan,
    StudySnapshot,
    TaskStats,
    average_time_seconds,
)
from services.aggregation.tree_test import AttemptRow
from services.store import ContentRow

CONTENT_RESPONSES: dict[ContentKind, type[BaseModel]] = {
    ContentKind.CARDS: CardResponse,
    ContentKind.CATEGORIES: CategoryResponse,
    ContentKind.TREE_NODES: TreeNodeResponse,
    ContentKind.TASKS: TaskResponse,
}


def _round_or_none(value: Optional[float], digits: int) -> Optional[float]:
    if value is None:
        return None
    return round(value, digits)


def build_study_response(
    study: Study,
    *,
    participant_count: int,
    completed_count: int,
    content_locked: bool,
) -> StudyResponse:
    return StudyResponse(
        id=study.id,
        title=study.title,
        description=study.description,
        type=study.type,
        status=study.status,
        sorting_type=study.sorting_type,
        created_at=study.created_at,
        participant_count=participant_count,
        completed_count=completed_count,
        content_locked=content_locked,
    )


def build_content_response(kind: ContentKind, row: ContentRow) -> BaseModel:
    return CONTENT_RESPONSES[kind].model_validate(row)


def build_participant_summaries(snapshot: StudySnapshot) -> list[dict[str, Any]]:
    return [
        {
            "participant_id": participant.id,
            "participant_number": snapshot.participant_number(participant.id),
            "started_at": participant.started_at.isoformat(),
            "completed_at": participant.completed_at.isoformat(),
        }
        for participant in snapshot.participants
    ]


def build_category_group_item(group: CategoryGroup) -> dict[str, Any]:
    return {
        "name": group.name,
        "type": group.type.value,
        "card_count": group.card_count,
        "cards": [asdict(card) for card in group.cards],
    }


def build_card_sort_results_payload(
    snapshot: StudySnapshot,
    groups: list[CategoryGroup],
    *,
    participant_id: str,
    category_type: str,
) -> dict[str, Any]:
    return {
        "study_id": snapshot.study.id,
        "type": snapshot.study.type.value,
        "participant_count": len(snapshot.participants),
        "participants": build_participant_summaries(snapshot),
        "filters": {"participant_id": participant_id, "category_type": category_type},
        "categories": [build_category_group_item(group) for group in groups],
    }


def build_task_stats_item(stats: TaskStats) -> dict[str, Any]:
    return {
        "task_id": stats.task_id,
        "question": stats.question,
        "correct_node_id": stats.correct_node_id,
        "correct_answer": stats.correct_label,
        "scored": stats.scored,
        "response_count": stats.response_count,
        "correct_count": stats.correct_count,
        "no_selection_count": stats.no_selection_count,
        "success_rate": _round_or_none(stats.success_rate, 4),
        "average_time_seconds": _round_or_none(stats.average_time_seconds, 2),
    }


def build_attempt_item(row: AttemptRow) -> dict[str, Any]:
    return {
        "participant_id": row.participant_id,
        "participant_number": row.participant_number,
        "task_id": row.task_id,
        "task": row.task_question,
        "selected_node_id": row.selected_node_id,
        "selected_answer": row.selected_label,
        "correct_answer": row.correct_label,
        "path_taken": {
            "node_ids": list(row.path),
            "labels": list(row.path_labels),
            "text": row.path_text,
        },
        "is_correct": row.is_correct,
        "time_spent_seconds": round(row.time_spent_seconds, 1),
    }


def build_tree_test_results_payload(
    snapshot: StudySnapshot,
    stats: list[TaskStats],
    rows: list[AttemptRow],
    *,
    participant_id: str,
    task_id: str,
    null_selection_policy: str,
) -> dict[str, Any]:
    return {
        "study_id": snapshot.study.id,
        "type": snapshot.study.type.value,
        "participant_count": len(snapshot.participants),
        "participants": build_participant_summaries(snapshot),
        "filters": {"participant_id": participant_id, "task_id": task_id},
        "null_selection_policy": null_selection_policy,
        "tasks": [build_task_stats_item(item) for item in stats],
        "results": [build_attempt_item(row) for row in rows],
    }


def build_click_item(point: ClickPoint) -> dict[str, Any]:
    return {
        "participant_id": point.participant_id,
        "participant_number": point.participant_number,
        "x": point.x,
        "y": point.y,
        "time_to_click_ms": point.time_to_click_ms,
        "timed_out": point.timed_out,
    }


def build_click_task_item(
    *,
    task_id: str,
    question: str,
    image_url: Optional[str],
    points: list[ClickPoint],
) -> dict[str, Any]:
    return {
        "task_id": task_id,
        "question": question,
        "image_url": image_url,
        "click_count": len(points),
        "average_time_seconds": _round_or_none(average_time_seconds(points), 2),
        "clicks": [build_click_item(point) for point in points],
    }


def build_first_click_results_payload(
    snapshot: StudySnapshot,
    tasks: list[dict[str, Any]],
    *,
    participant_id: str,
    task_id: str,
    include_timeouts: bool,
) -> dict[str, Any]:
    return {
        "study_id": snapshot.study.id,
        "type": snapshot.study.type.value,
        "participant_count": len(snapshot.participants),
        "participants": build_participant_summaries(snapshot),
        "filters": {"participant_id": participant_id, "task_id": task_id},
        "include_timeouts": include_timeouts,
        "tasks": tasks,
    }


def build_heatmap_payload(
    plan: HeatmapPlan,
    points: list[ClickPoint],
    *,
    task_id: str,
    participant_id: str,
) -> dict[str, Any]:
    return {
        "task_id": task_id,
        "participant_id": participant_id,
        "click_count": len(points),
        "average_time_seconds": _round_or_none(average_time_seconds(points), 2),
        **asdict(plan),
    }
