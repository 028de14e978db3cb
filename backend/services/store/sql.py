from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from domain import ContentKind, StudyType
from models import CardSortResult, ClickResult, Participant, Study, TreeTestResult
from services.aggregation.snapshot import CompletedParticipant, StudyContent
from .base import CONTENT_MODELS, RESULT_MODELS, ContentRow, PersistenceFailure, ResultRow
from .mappers import build_completed_participant, build_study_content

logger = logging.getLogger(__name__)


class SqlResultStore:
    def __init__(self, db: AsyncSession):
        self._db = db

    async def get_completed_participants(self, study_id: str) -> list[CompletedParticipant]:
        participants = (
            (
                await self._db.execute(
                    select(Participant)
                    .where(
                        Participant.study_id == study_id,
                        Participant.completed_at.is_not(None),
                    )
                    .order_by(Participant.started_at, Participant.id)
                )
            )
            .scalars()
            .all()
        )
        if not participants:
            return []

        participant_ids = [p.id for p in participants]
        card_sort = await self._fetch_results(CardSortResult, participant_ids)
        tree_test = await self._fetch_results(TreeTestResult, participant_ids)
        clicks = await self._fetch_results(ClickResult, participant_ids)

        return [
            build_completed_participant(
                participant,
                card_sort_results=card_sort[participant.id],
                tree_test_results=tree_test[participant.id],
                click_results=clicks[participant.id],
            )
            for participant in participants
        ]

    async def _fetch_results(
        self,
        model: type[ResultRow],
        participant_ids: list[str],
    ) -> dict[str, list[ResultRow]]:
        rows = (
            (
                await self._db.execute(
                    select(model)
                    .where(model.participant_id.in_(participant_ids))
                    .order_by(model.participant_id, model.position)
                )
            )
            .scalars()
            .all()
        )
        grouped: dict[str, list[ResultRow]] = defaultdict(list)
        for row in rows:
            grouped[row.participant_id].append(row)
        return grouped

    async def get_study_content(self, study_id: str) -> StudyContent:
        return build_study_content(
            cards=await self.list_content(study_id, ContentKind.CARDS),
            categories=await self.list_content(study_id, ContentKind.CATEGORIES),
            tree_nodes=await self.list_content(study_id, ContentKind.TREE_NODES),
            tasks=await self.list_content(study_id, ContentKind.TASKS),
        )

    async def submit_participant_results(
        self,
        participant_id: str,
        study_type: StudyType,
        rows: Sequence[ResultRow],
    ) -> None:
        model = RESULT_MODELS[study_type]
        try:
            participant = await self._db.get(Participant, participant_id)
            if participant is None:
                raise PersistenceFailure(f"Participant {participant_id} no longer exists")
            await self._db.execute(delete(model).where(model.participant_id == participant_id))
            for position, row in enumerate(rows):
                row.participant_id = participant_id
                row.position = position
                self._db.add(row)
            participant.completed_at = datetime.now(UTC)
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.error("Failed to store results for participant %s: %s", participant_id, exc)
            raise PersistenceFailure(str(exc)) from exc

    async def create_study(self, study: Study) -> Study:
        self._db.add(study)
        await self._db.commit()
        await self._db.refresh(study)
        return study

    async def get_study(self, study_id: str) -> Optional[Study]:
        return (await self._db.execute(select(Study).where(Study.id == study_id))).scalar_one_or_none()

    async def list_studies(self, skip: int, limit: int) -> list[Study]:
        return list(
            (
                await self._db.execute(
                    select(Study).order_by(Study.created_at.desc()).offset(skip).limit(limit)
                )
            )
            .scalars()
            .all()
        )

    async def save_study(self, study: Study) -> Study:
        self._db.add(study)
        await self._db.commit()
        await self._db.refresh(study)
        return study

    async def delete_study(self, study: Study) -> None:
        await self._db.delete(study)
        await self._db.commit()

    async def count_participants(self, study_id: str, *, completed_only: bool = False) -> int:
        statement = select(func.count(Participant.id)).where(Participant.study_id == study_id)
        if completed_only:
            statement = statement.where(Participant.completed_at.is_not(None))
        return int((await self._db.execute(statement)).scalar_one() or 0)

    async def list_content(self, study_id: str, kind: ContentKind) -> list[ContentRow]:
        model = CONTENT_MODELS[kind]
        return list(
            (
                await self._db.execute(
                    select(model).where(model.study_id == study_id).order_by(model.order, model.id)
                )
            )
            .scalars()
            .all()
        )

    async def get_content(self, kind: ContentKind, item_id: str) -> Optional[ContentRow]:
        return await self._db.get(CONTENT_MODELS[kind], item_id)

    async def save_content(self, row: ContentRow) -> ContentRow:
        self._db.add(row)
        await self._db.commit()
        await self._db.refresh(row)
        return row

    async def delete_content(self, row: ContentRow) -> None:
        await self._db.delete(row)
        await self._db.commit()

    async def reorder_content(self, rows: Sequence[ContentRow]) -> None:
        try:
            for index, row in enumerate(rows):
                row.order = index
                self._db.add(row)
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.error("Failed to reorder %s rows: %s", len(rows), exc)
            raise PersistenceFailure(str(exc)) from exc

    async def create_participant(self, participant: Participant) -> Participant:
        self._db.add(participant)
        await self._db.commit()
        await self._db.refresh(participant)
        return participant

    async def get_participant(self, participant_id: str) -> Optional[Participant]:
        return await self._db.get(Participant, participant_id)

