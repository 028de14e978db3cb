from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from config import Settings, get_settings
from schemas import (
    ParticipantStartResponse,
    PublicStudyResponse,
    ResultSubmission,
    SubmissionResponse,
)
from services import participant
from services.store import ResultStore, get_result_store

router = APIRouter(prefix="/studies", tags=["participants"])


@router.get("/{study_id}", response_model=PublicStudyResponse)
async def get_study(
    study_id: str,
    store: ResultStore = Depends(get_result_store),
):
    return await participant.get_public_study(study_id=study_id, store=store)


@router.post("/{study_id}/participants", response_model=ParticipantStartResponse)
async def start_participant(
    study_id: str,
    store: ResultStore = Depends(get_result_store),
):
    return await participant.start_participant(study_id=study_id, store=store)


@router.patch("/{study_id}/participants", response_model=SubmissionResponse)
async def submit_results(
    study_id: str,
    payload: ResultSubmission = Body(..., discriminator="type"),
    settings: Settings = Depends(get_settings),
    store: ResultStore = Depends(get_result_store),
):
    return await participant.submit_results(
        study_id=study_id,
        payload=payload,
        settings=settings,
        store=store,
    )
