from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from fastapi import HTTPException

from domain import ContentKind, StudyStatus, StudyType
from models import Study
from services.store import ContentRow

CONTENT_KINDS_BY_STUDY_TYPE: dict[StudyType, frozenset[ContentKind]] = {
    StudyType.CARD_SORTING: frozenset({ContentKind.CARDS, ContentKind.CATEGORIES}),
    StudyType.TREE_TESTING: frozenset({ContentKind.TREE_NODES, ContentKind.TASKS}),
    StudyType.FIRST_CLICK: frozenset({ContentKind.TASKS}),
}


def is_content_locked(study: Study, *, completed_count: int) -> bool:
    status = StudyStatus(study.status)
    if status is StudyStatus.ACTIVE:
        return True
    return status is StudyStatus.CLOSED and completed_count > 0


def validate_content_unlocked(study: Study, *, completed_count: int) -> None:
    if is_content_locked(study, completed_count=completed_count):
        raise HTTPException(
            status_code=409,
            detail="Study content is locked while the study is active or has responses",
        )


def validate_kind_for_study(study: Study, kind: ContentKind) -> None:
    if kind not in CONTENT_KINDS_BY_STUDY_TYPE[StudyType(study.type)]:
        raise HTTPException(
            status_code=400,
            detail=f"{study.type} studies have no {kind.value}",
        )


def validate_status_change(
    study: Study,
    new_status: StudyStatus,
    *,
    completed_count: int,
) -> None:
    # Back to DRAFT would unlock content that existing responses refer to.
    if new_status is StudyStatus.DRAFT and study.status != StudyStatus.DRAFT.value and completed_count:
        raise HTTPException(
            status_code=409,
            detail="Studies with completed responses cannot return to draft",
        )


def validate_sorting_type_change(study: Study) -> None:
    if study.type != StudyType.CARD_SORTING.value:
        raise HTTPException(
            status_code=400,
            detail="sorting_type only applies to card sorting studies",
        )


def validate_parent_node(parent: Optional[ContentRow], study: Study) -> None:
    if parent is None or parent.study_id != study.id:
        raise HTTPException(status_code=400, detail="Parent node not found in this study")


def validate_correct_node(study: Study, node: Optional[ContentRow]) -> None:
    if study.type != StudyType.TREE_TESTING.value:
        raise HTTPException(
            status_code=400,
            detail="correct_node_id only applies to tree testing studies",
        )
    if node is None or node.study_id != study.id:
        raise HTTPException(status_code=400, detail="Correct node not found in this study")


def validate_reorder_ids(ids: Sequence[str], rows: Sequence[ContentRow]) -> None:
    if len(set(ids)) != len(ids):
        raise HTTPException(status_code=400, detail="Reorder ids must be unique")
    if set(ids) != {row.id for row in rows}:
        raise HTTPException(
            status_code=400,
            detail="Reorder ids must list every item of the group exactly once",
        )
