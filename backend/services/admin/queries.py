from __future__ import annotations

from fastapi import HTTPException

from domain import ContentKind
from models import Study
from services.aggregation import StudySnapshot
from services.store import ContentRow, ResultStore
from services.store.mappers import build_study_record


async def fetch_study_or_404(study_id: str, store: ResultStore) -> Study:
    study = await store.get_study(study_id)
    if not study:
        raise HTTPException(status_code=404, detail="Study not found")
    return study


async def fetch_content_or_404(
    study: Study,
    kind: ContentKind,
    item_id: str,
    store: ResultStore,
) -> ContentRow:
    row = await store.get_content(kind, item_id)
    if not row or row.study_id != study.id:
        raise HTTPException(status_code=404, detail="Item not found")
    return row


async def fetch_study_snapshot(study: Study, store: ResultStore) -> StudySnapshot:
    content = await store.get_study_content(study.id)
    participants = await store.get_completed_participants(study.id)
    return StudySnapshot(
        study=build_study_record(study),
        content=content,
        participants=tuple(participants),
    )
