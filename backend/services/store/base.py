from __future__ import annotations

from collections.abc import Sequence
from typing import Optional, Protocol, Union

from domain import ContentKind, StudyType
from models import (
    Card,
    CardSortResult,
    Category,
    ClickResult,
    Participant,
    Study,
    Task,
    TreeNode,
    TreeTestResult,
)
from services.aggregation.snapshot import CompletedParticipant, StudyContent

ContentRow = Union[Card, Category, TreeNode, Task]
ResultRow = Union[CardSortResult, TreeTestResult, ClickResult]

CONTENT_MODELS: dict[ContentKind, type[ContentRow]] = {
    ContentKind.CARDS: Card,
    ContentKind.CATEGORIES: Category,
    ContentKind.TREE_NODES: TreeNode,
    ContentKind.TASKS: Task,
}

RESULT_MODELS: dict[StudyType, type[ResultRow]] = {
    StudyType.CARD_SORTING: CardSortResult,
    StudyType.TREE_TESTING: TreeTestResult,
    StudyType.FIRST_CLICK: ClickResult,
}


class PersistenceFailure(RuntimeError):
    """A write could not be completed; nothing from the failed batch is kept."""


class ResultStore(Protocol):
    """Record store for studies, their content and participant submissions.

    `get_completed_participants`, `get_study_content` and
    `submit_participant_results` are all the results engine relies on; the
    remaining methods back the researcher-facing editing flow.
    """

    async def get_completed_participants(self, study_id: str) -> list[CompletedParticipant]: ...

    async def get_study_content(self, study_id: str) -> StudyContent: ...

    async def submit_participant_results(
        self,
        participant_id: str,
        study_type: StudyType,
        rows: Sequence[ResultRow],
    ) -> None:
        """Replace the participant's rows for `study_type` and mark them completed."""

    async def create_study(self, study: Study) -> Study: ...

    async def get_study(self, study_id: str) -> Optional[Study]: ...

    async def list_studies(self, skip: int, limit: int) -> list[Study]: ...

    async def save_study(self, study: Study) -> Study: ...

    async def delete_study(self, study: Study) -> None: ...

    async def count_participants(self, study_id: str, *, completed_only: bool = False) -> int: ...

    async def list_content(
        self,
        study_id: str,
        kind: ContentKind,
    ) -> list[ContentRow]: ...

    async def get_content(self, kind: ContentKind, item_id: str) -> Optional[ContentRow]: ...

    async def save_content(self, row: ContentRow) -> ContentRow: ...

    async def delete_content(self, row: ContentRow) -> None: ...

    async def reorder_content(self, rows: Sequence[ContentRow]) -> None:
        """Give each row its index as `order`, as one batch."""

    async def create_participant(self, participant: Participant) -> Participant: ...

    async def get_participant(self, participant_id: str) -> Optional[Participant]: ...
