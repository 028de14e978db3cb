from __future__ import annotations

import logging

from domain import StudyStatus
from models import Study
from schemas import StudyCreate, StudyResponse, StudyUpdate
from services.store import ResultStore
from .mappers import build_study_response
from .queries import fetch_study_or_404
from .validators import (
    is_content_locked,
    validate_content_unlocked,
    validate_sorting_type_change,
    validate_status_change,
)

logger = logging.getLogger(__name__)


async def _build_response(study: Study, store: ResultStore) -> StudyResponse:
    participant_count = await store.count_participants(study.id)
    completed_count = await store.count_participants(study.id, completed_only=True)
    return build_study_response(
        study,
        participant_count=participant_count,
        completed_count=completed_count,
        content_locked=is_content_locked(study, completed_count=completed_count),
    )


async def create_study(
    payload: StudyCreate,
    store: ResultStore,
) -> StudyResponse:
    study = await store.create_study(
        Study(
            title=payload.title,
            description=payload.description,
            type=payload.type.value,
            sorting_type=payload.sorting_type.value if payload.sorting_type else None,
        )
    )

    logger.info("Created study: id=%s, type=%s, title=%s", study.id, study.type, study.title)
    return build_study_response(
        study,
        participant_count=0,
        completed_count=0,
        content_locked=False,
    )


async def list_studies(
    *,
    skip: int,
    limit: int,
    store: ResultStore,
) -> list[StudyResponse]:
    studies = await store.list_studies(skip=skip, limit=limit)
    return [await _build_response(study, store) for study in studies]


async def get_study(
    *,
    study_id: str,
    store: ResultStore,
) -> StudyResponse:
    study = await fetch_study_or_404(study_id, store)
    return await _build_response(study, store)


async def update_study(
    *,
    study_id: str,
    payload: StudyUpdate,
    store: ResultStore,
) -> StudyResponse:
    study = await fetch_study_or_404(study_id, store)
    completed_count = await store.count_participants(study.id, completed_only=True)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("sorting_type") is not None:
        validate_sorting_type_change(study)
        if changes["sorting_type"] != study.sorting_type:
            validate_content_unlocked(study, completed_count=completed_count)
        study.sorting_type = changes["sorting_type"].value

    if changes.get("status") is not None:
        new_status = StudyStatus(changes["status"])
        validate_status_change(study, new_status, completed_count=completed_count)
        if new_status.value != study.status:
            logger.info("Study %s status: %s -> %s", study.id, study.status, new_status.value)
        study.status = new_status.value

    if changes.get("title") is not None:
        study.title = changes["title"]
    if "description" in changes:
        study.description = changes["description"]

    study = await store.save_study(study)
    return build_study_response(
        study,
        participant_count=await store.count_participants(study.id),
        completed_count=completed_count,
        content_locked=is_content_locked(study, completed_count=completed_count),
    )


async def delete_study(
    *,
    study_id: str,
    store: ResultStore,
) -> dict[str, str]:
    study = await fetch_study_or_404(study_id, store)
    study_title = study.title

    await store.delete_study(study)

    logger.info("Deleted study: id=%s, title=%s", study_id, study_title)
    return {"message": "Study deleted successfully"}
