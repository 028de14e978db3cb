from __future__ import annotations

from fastapi import HTTPException

from domain import StudyStatus
from models import Participant, Study


def validate_study_accepting_responses(study: Study) -> None:
    if study.status != StudyStatus.ACTIVE.value:
        raise HTTPException(status_code=409, detail="This study is not accepting responses")


def validate_participant_belongs_to_study(participant: Participant | None, study: Study) -> Participant:
    if participant is None or participant.study_id != study.id:
        raise HTTPException(status_code=404, detail="Participant not found")
    return participant


def validate_submission_type(submission_type: str, study: Study) -> None:
    if submission_type != study.type:
        raise HTTPException(
            status_code=400,
            detail=f"Submission type {submission_type} does not match study type {study.type}",
        )
