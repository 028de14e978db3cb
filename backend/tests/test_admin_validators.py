from __future__ import annotations

import pytest
from fastapi import HTTPException

from domain import StudyStatus, StudyType
from models import Study
from services.admin.validators import is_content_locked, validate_content_unlocked


def _study(status: StudyStatus) -> Study:
    return Study(title="Groceries", type=StudyType.CARD_SORTING.value, status=status.value)


@pytest.mark.parametrize(
    ("status", "completed_count", "locked"),
    [
        (StudyStatus.DRAFT, 0, False),
        (StudyStatus.DRAFT, 3, False),
        (StudyStatus.ACTIVE, 0, True),
        (StudyStatus.ACTIVE, 1, True),
        (StudyStatus.CLOSED, 0, False),
        (StudyStatus.CLOSED, 1, True),
    ],
)
def test_content_lock_depends_on_status_and_responses(
    status: StudyStatus,
    completed_count: int,
    locked: bool,
) -> None:
    assert is_content_locked(_study(status), completed_count=completed_count) is locked


def test_locked_content_raises_conflict() -> None:
    with pytest.raises(HTTPException) as exc_info:
        validate_content_unlocked(_study(StudyStatus.CLOSED), completed_count=2)

    assert exc_info.value.status_code == 409

    validate_content_unlocked(_study(StudyStatus.CLOSED), completed_count=0)
