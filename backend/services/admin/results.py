from __future__ import annotations

from typing import Any, assert_never

from fastapi import HTTPException

from config import Settings
from domain import ALL_FILTER, CategoryType, StudyType
from services.aggregation import (
    aggregate_clicks,
    filter_by_category_type,
    filter_by_participant,
    filter_results,
    group_by_category,
    per_task_stats,
    render_heatmap,
)
from services.store import ResultStore
from .mappers import (
    build_card_sort_results_payload,
    build_click_task_item,
    build_first_click_results_payload,
    build_heatmap_payload,
    build_tree_test_results_payload,
)
from .queries import fetch_study_or_404, fetch_study_snapshot

CATEGORY_TYPE_FILTERS = frozenset({ALL_FILTER, *(t.value for t in CategoryType)})


async def get_study_results(
    *,
    study_id: str,
    participant_id: str,
    task_id: str,
    category_type: str,
    settings: Settings,
    store: ResultStore,
) -> dict[str, Any]:
    study = await fetch_study_or_404(study_id, store)
    snapshot = await fetch_study_snapshot(study, store)

    match snapshot.study.type:
        case StudyType.CARD_SORTING:
            if category_type not in CATEGORY_TYPE_FILTERS:
                raise HTTPException(status_code=400, detail=f"Unknown category type: {category_type}")
            groups = filter_by_category_type(
                filter_by_participant(group_by_category(snapshot), participant_id),
                category_type,
            )
            return build_card_sort_results_payload(
                snapshot,
                groups,
                participant_id=participant_id,
                category_type=category_type,
            )
        case StudyType.TREE_TESTING:
            policy = settings.scoring.null_selection_policy
            stats = per_task_stats(snapshot, policy)
            if task_id != ALL_FILTER:
                stats = [item for item in stats if item.task_id == task_id]
            return build_tree_test_results_payload(
                snapshot,
                stats,
                filter_results(snapshot, participant_id=participant_id, task_id=task_id),
                participant_id=participant_id,
                task_id=task_id,
                null_selection_policy=policy.value,
            )
        case StudyType.FIRST_CLICK:
            include_timeouts = settings.scoring.include_click_timeouts
            tasks = [
                build_click_task_item(
                    task_id=task.id,
                    question=task.question,
                    image_url=task.image_url,
                    points=aggregate_clicks(
                        snapshot,
                        task.id,
                        participant_id=participant_id,
                        include_timeouts=include_timeouts,
                    ),
                )
                for task in snapshot.content.tasks
                if task_id == ALL_FILTER or task.id == task_id
            ]
            return build_first_click_results_payload(
                snapshot,
                tasks,
                participant_id=participant_id,
                task_id=task_id,
                include_timeouts=include_timeouts,
            )
        case _:
            assert_never(snapshot.study.type)


async def get_heatmap(
    *,
    study_id: str,
    task_id: str | None,
    participant_id: str,
    width: int,
    height: int,
    settings: Settings,
    store: ResultStore,
) -> dict[str, Any]:
    study = await fetch_study_or_404(study_id, store)
    if study.type != StudyType.FIRST_CLICK.value:
        raise HTTPException(status_code=400, detail="Heatmaps are only available for first-click studies")

    snapshot = await fetch_study_snapshot(study, store)
    resolved_task_id = task_id or snapshot.content.first_task_id
    if resolved_task_id is None or resolved_task_id not in snapshot.content.tasks_by_id:
        raise HTTPException(status_code=404, detail="Task not found")

    points = aggregate_clicks(
        snapshot,
        resolved_task_id,
        participant_id=participant_id,
        include_timeouts=settings.scoring.include_click_timeouts,
    )
    plan = render_heatmap(
        points,
        width,
        height,
        color_by_participant=participant_id == ALL_FILTER,
    )
    return build_heatmap_payload(
        plan,
        points,
        task_id=resolved_task_id,
        participant_id=participant_id,
    )
