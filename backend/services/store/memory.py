from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Optional

from domain import ContentKind, StudyType
from models import Participant, Study
from services.aggregation.snapshot import CompletedParticipant, StudyContent
from .base import CONTENT_MODELS, RESULT_MODELS, ContentRow, PersistenceFailure, ResultRow
from .mappers import build_completed_participant, build_study_content


class InMemoryResultStore:
    """Process-local store with the same semantics as `SqlResultStore`.

    Rows live in insertion-ordered dicts keyed by id; deletes cascade the way
    the database foreign keys do. Setting `fail_writes` makes batch writes
    raise `PersistenceFailure` without touching stored rows.
    """

    def __init__(self) -> None:
        self._studies: dict[str, Study] = {}
        self._participants: dict[str, Participant] = {}
        self._content: dict[ContentKind, dict[str, ContentRow]] = {
            kind: {} for kind in CONTENT_MODELS
        }
        self._results: dict[StudyType, dict[str, ResultRow]] = {
            study_type: {} for study_type in RESULT_MODELS
        }
        self.fail_writes = False

    async def get_completed_participants(self, study_id: str) -> list[CompletedParticipant]:
        participants = sorted(
            (
                p
                for p in self._participants.values()
                if p.study_id == study_id and p.completed_at is not None
            ),
            key=lambda p: p.started_at,
        )
        return [
            build_completed_participant(
                participant,
                card_sort_results=self._results_for(StudyType.CARD_SORTING, participant.id),
                tree_test_results=self._results_for(StudyType.TREE_TESTING, participant.id),
                click_results=self._results_for(StudyType.FIRST_CLICK, participant.id),
            )
            for participant in participants
        ]

    def _results_for(self, study_type: StudyType, participant_id: str) -> list[ResultRow]:
        rows = [r for r in self._results[study_type].values() if r.participant_id == participant_id]
        return sorted(rows, key=lambda r: r.position)

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
        if self.fail_writes:
            raise PersistenceFailure("Writes are disabled")
        participant = self._participants.get(participant_id)
        if participant is None:
            raise PersistenceFailure(f"Participant {participant_id} no longer exists")

        table = self._results[study_type]
        for row_id in [r.id for r in table.values() if r.participant_id == participant_id]:
            del table[row_id]
        for position, row in enumerate(rows):
            row.participant_id = participant_id
            row.position = position
            table[row.id] = row
        participant.completed_at = datetime.now(UTC)

    async def create_study(self, study: Study) -> Study:
        self._studies[study.id] = study
        return study

    async def get_study(self, study_id: str) -> Optional[Study]:
        return self._studies.get(study_id)

    async def list_studies(self, skip: int, limit: int) -> list[Study]:
        studies = sorted(self._studies.values(), key=lambda s: s.created_at, reverse=True)
        return studies[skip : skip + limit]

    async def save_study(self, study: Study) -> Study:
        self._studies[study.id] = study
        return study

    async def delete_study(self, study: Study) -> None:
        self._studies.pop(study.id, None)
        for table in self._content.values():
            for row_id in [r.id for r in table.values() if r.study_id == study.id]:
                del table[row_id]
        participant_ids = {p.id for p in self._participants.values() if p.study_id == study.id}
        for participant_id in participant_ids:
            del self._participants[participant_id]
        for table in self._results.values():
            for row_id in [r.id for r in table.values() if r.participant_id in participant_ids]:
                del table[row_id]

    async def count_participants(self, study_id: str, *, completed_only: bool = False) -> int:
        return sum(
            1
            for p in self._participants.values()
            if p.study_id == study_id and (not completed_only or p.completed_at is not None)
        )

    async def list_content(self, study_id: str, kind: ContentKind) -> list[ContentRow]:
        rows = [r for r in self._content[kind].values() if r.study_id == study_id]
        return sorted(rows, key=lambda r: (r.order, r.id))

    async def get_content(self, kind: ContentKind, item_id: str) -> Optional[ContentRow]:
        return self._content[kind].get(item_id)

    async def save_content(self, row: ContentRow) -> ContentRow:
        self._content[_kind_of(row)][row.id] = row
        return row

    async def delete_content(self, row: ContentRow) -> None:
        kind = _kind_of(row)
        self._content[kind].pop(row.id, None)
        if kind is not ContentKind.TREE_NODES:
            return

        removed = {row.id}
        nodes = self._content[ContentKind.TREE_NODES]
        frontier = [row.id]
        while frontier:
            parent_id = frontier.pop()
            for child_id in [n.id for n in nodes.values() if n.parent_id == parent_id]:
                removed.add(child_id)
                frontier.append(child_id)
                del nodes[child_id]
        for task in self._content[ContentKind.TASKS].values():
            if task.correct_node_id in removed:
                task.correct_node_id = None

    async def reorder_content(self, rows: Sequence[ContentRow]) -> None:
        if self.fail_writes:
            raise PersistenceFailure("Writes are disabled")
        for index, row in enumerate(rows):
            row.order = index

    async def create_participant(self, participant: Participant) -> Participant:
        self._participants[participant.id] = participant
        return participant

    async def get_participant(self, participant_id: str) -> Optional[Participant]:
        return self._participants.get(participant_id)


def _kind_of(row: ContentRow) -> ContentKind:
    for kind, model in CONTENT_MODELS.items():
        if isinstance(row, model):
            return kind
    raise TypeError(f"Not a content row: {type(row).__name__}")

