from __future__ import annotations

import logging
from typing import assert_never

from fastapi import HTTPException

from config import Settings
from domain import ContentKind, SortingType, StudyType
from models import Participant, Study
from schemas import (
    CardSortSubmission,
    FirstClickSubmission,
    ParticipantStartResponse,
    PublicStudyResponse,
    ResultSubmission,
    SubmissionResponse,
    TreeTestSubmission,
)
from services.store import PersistenceFailure, ResultRow, ResultStore
from .mappers import (
    build_card_sort_rows,
    build_click_rows,
    build_public_study_response,
    build_tree_test_rows,
)
from .validators import (
    validate_participant_belongs_to_study,
    validate_study_accepting_responses,
    validate_submission_type,
)

logger = logging.getLogger(__name__)


async def _fetch_open_study(study_id: str, store: ResultStore) -> Study:
    study = await store.get_study(study_id)
    if not study:
        raise HTTPException(status_code=404, detail="Study not found")
    validate_study_accepting_responses(study)
    return study


async def get_public_study(
    *,
    study_id: str,
    store: ResultStore,
) -> PublicStudyResponse:
    study = await _fetch_open_study(study_id, store)
    return build_public_study_response(
        study,
        cards=await store.list_content(study.id, ContentKind.CARDS),
        categories=await store.list_content(study.id, ContentKind.CATEGORIES),
        tree_nodes=await store.list_content(study.id, ContentKind.TREE_NODES),
        tasks=await store.list_content(study.id, ContentKind.TASKS),
    )


async def start_participant(
    *,
    study_id: str,
    store: ResultStore,
) -> ParticipantStartResponse:
    study = await _fetch_open_study(study_id, store)
    participant = await store.create_participant(Participant(study_id=study.id))

    logger.info("New participant: participant_id=%s, study_id=%s", participant.id, study.id)
    return ParticipantStartResponse(
        participant_id=participant.id,
        study_id=study.id,
        started_at=participant.started_at,
    )


async def submit_results(
    *,
    study_id: str,
    payload: ResultSubmission,
    settings: Settings,
    store: ResultStore,
) -> SubmissionResponse:
    study = await _fetch_open_study(study_id, store)
    validate_submission_type(payload.type, study)
    participant = validate_participant_belongs_to_study(
        await store.get_participant(payload.participant_id),
        study,
    )
    if participant.completed_at is not None:
        logger.info("Resubmission replaces results: participant_id=%s", participant.id)

    content = await store.get_study_content(study.id)
    rows: list[ResultRow]
    match payload:
        case CardSortSubmission():
            rows = build_card_sort_rows(
                payload.results,
                content=content,
                sorting_type=SortingType(study.sorting_type or SortingType.OPEN.value),
                require_complete=settings.submissions.require_complete_card_sort,
            )
        case TreeTestSubmission():
            rows = build_tree_test_rows(payload.results, content=content)
        case FirstClickSubmission():
            rows = build_click_rows(payload.results, content=content)
        case _:
            assert_never(payload)

    try:
        await store.submit_participant_results(participant.id, StudyType(study.type), rows)
    except PersistenceFailure as exc:
        logger.error("Submission failed: participant_id=%s, error=%s", participant.id, exc)
        raise HTTPException(status_code=503, detail="Could not save results, please try again")

    logger.info(
        "Results submitted: participant_id=%s, study_id=%s, rows=%s",
        participant.id,
        study.id,
        len(rows),
    )
    return SubmissionResponse(
        participant_id=participant.id,
        completed_at=participant.completed_at,
        result_count=len(rows),
    )
