from __future__ import annotations

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from domain import SortingType
from schemas import CardPlacementSubmit, ClickSubmit, TreeTestAttemptSubmit
from services.participant.mappers import (
    build_card_sort_rows,
    build_click_rows,
    build_tree_test_rows,
)
from services.aggregation.snapshot import (
    CardRecord,
    CategoryRecord,
    StudyContent,
    TaskRecord,
    TreeNodeRecord,
)

CARD_SORT_CONTENT = StudyContent(
    cards=(CardRecord(id="apple", label="Apple"), CardRecord(id="bread", label="Bread", order=1)),
    categories=(CategoryRecord(id="fruits", name="Fruits"),),
)

TREE_CONTENT = StudyContent(
    tree_nodes=(
        TreeNodeRecord(id="home", label="Home"),
        TreeNodeRecord(id="shop", label="Shop", parent_id="home"),
    ),
    tasks=(TaskRecord(id="t1", question="Find the shop", correct_node_id="shop"),),
)

CLICK_CONTENT = StudyContent(
    tasks=(
        TaskRecord(id="t1", question="Sign up", display_time_seconds=7),
        TaskRecord(id="t2", question="Cart", order=1),
    ),
)


def _placements(*items: dict) -> list[CardPlacementSubmit]:
    return [CardPlacementSubmit(**item) for item in items]


def _sort(placements, sorting_type=SortingType.OPEN, require_complete=False):
    return build_card_sort_rows(
        placements,
        content=CARD_SORT_CONTENT,
        sorting_type=sorting_type,
        require_complete=require_complete,
    )


def _status(exc_info: pytest.ExceptionInfo[HTTPException]) -> int:
    return exc_info.value.status_code


def test_predefined_category_by_id_keeps_its_name() -> None:
    (row,) = _sort(_placements({"card_id": "apple", "category_id": "fruits"}))

    assert row.category_id == "fruits"
    assert row.category_name == "Fruits"
    assert row.original_category_name == "Fruits"


def test_predefined_category_by_name_resolves_its_id() -> None:
    (row,) = _sort(_placements({"card_id": "apple", "category_name": "Fruits"}))

    assert row.category_id == "fruits"
    assert row.original_category_name == "Fruits"


def test_new_category_in_open_sort() -> None:
    (row,) = _sort(_placements({"card_id": "bread", "category_name": "  Bakery "}))

    assert row.category_id is None
    assert row.category_name == "Bakery"
    assert row.original_category_name is None


def test_closed_sort_rejects_new_categories() -> None:
    with pytest.raises(HTTPException) as exc_info:
        _sort(
            _placements({"card_id": "bread", "category_name": "Bakery"}),
            sorting_type=SortingType.CLOSED,
        )

    assert _status(exc_info) == 400


def test_hybrid_sort_allows_renaming_a_predefined_category() -> None:
    (row,) = _sort(
        _placements({"card_id": "apple", "category_id": "fruits", "category_name": "Food"}),
        sorting_type=SortingType.HYBRID,
    )

    assert row.category_id is None
    assert row.category_name == "Food"
    assert row.original_category_name == "Fruits"


@pytest.mark.parametrize("sorting_type", [SortingType.OPEN, SortingType.CLOSED])
def test_rename_outside_hybrid_is_rejected(sorting_type: SortingType) -> None:
    with pytest.raises(HTTPException) as exc_info:
        _sort(
            _placements({"card_id": "apple", "category_id": "fruits", "category_name": "Food"}),
            sorting_type=sorting_type,
        )

    assert _status(exc_info) == 400


def test_unknown_and_duplicate_cards_are_rejected() -> None:
    with pytest.raises(HTTPException):
        _sort(_placements({"card_id": "ghost", "category_id": "fruits"}))

    with pytest.raises(HTTPException):
        _sort(
            _placements(
                {"card_id": "apple", "category_id": "fruits"},
                {"card_id": "apple", "category_name": "Other"},
            )
        )


def test_unknown_category_id_without_name_is_rejected() -> None:
    with pytest.raises(HTTPException):
        _sort(_placements({"card_id": "apple", "category_id": "nope"}))


def test_complete_sort_requires_every_card() -> None:
    placements = _placements({"card_id": "apple", "category_id": "fruits"})

    with pytest.raises(HTTPException) as exc_info:
        _sort(placements, require_complete=True)

    assert "1 card(s)" in exc_info.value.detail
    assert len(_sort(placements, require_complete=False)) == 1


def test_placement_needs_a_category() -> None:
    with pytest.raises(ValidationError):
        CardPlacementSubmit(card_id="apple", category_name="   ")


def _attempt_row(**fields):
    (row,) = build_tree_test_rows([TreeTestAttemptSubmit(task_id="t1", **fields)], content=TREE_CONTENT)
    return row


def test_tree_attempt_is_scored_at_submission() -> None:
    correct = _attempt_row(selected_path=["home"], selected_node_id="shop", time_spent_ms=3000)
    wrong = _attempt_row(selected_node_id="home", time_spent_ms=2000)
    empty = _attempt_row(selected_path=["home"], time_spent_ms=60000)

    assert correct.is_correct is True
    assert correct.selected_path == ["home", "shop"]
    assert wrong.is_correct is False
    assert empty.is_correct is False
    assert empty.selected_node_id is None


def test_tree_attempts_reject_unknown_tasks_nodes_and_duplicates() -> None:
    cases = [
        [TreeTestAttemptSubmit(task_id="t9", time_spent_ms=1)],
        [TreeTestAttemptSubmit(task_id="t1", selected_node_id="ghost", time_spent_ms=1)],
        [TreeTestAttemptSubmit(task_id="t1", selected_path=["ghost"], time_spent_ms=1)],
        [
            TreeTestAttemptSubmit(task_id="t1", time_spent_ms=1),
            TreeTestAttemptSubmit(task_id="t1", time_spent_ms=1),
        ],
    ]
    for attempts in cases:
        with pytest.raises(HTTPException) as exc_info:
            build_tree_test_rows(attempts, content=TREE_CONTENT)
        assert _status(exc_info) == 400


def test_clicks_default_to_first_task_and_timeouts_are_synthesized() -> None:
    rows = build_click_rows(
        [
            ClickSubmit(x=12.5, y=40, time_to_click_ms=900),
            ClickSubmit(task_id="t1", timed_out=True),
            ClickSubmit(task_id="t2", x=0, y=100, time_to_click_ms=1500),
        ],
        content=CLICK_CONTENT,
    )

    assert [(r.task_id, r.x, r.y, r.timed_out) for r in rows] == [
        ("t1", 12.5, 40, False),
        ("t1", 50, 50, True),
        ("t2", 0, 100, False),
    ]
    assert rows[1].time_to_click_ms == 7000


def test_clicks_for_unknown_task_are_rejected() -> None:
    with pytest.raises(HTTPException):
        build_click_rows([ClickSubmit(task_id="t9", x=1, y=1, time_to_click_ms=1)], content=CLICK_CONTENT)

    with pytest.raises(HTTPException):
        build_click_rows([ClickSubmit(x=1, y=1, time_to_click_ms=1)], content=StudyContent())


@pytest.mark.parametrize(
    "payload",
    [
        {"x": 101, "y": 50, "time_to_click_ms": 100},
        {"x": 50, "y": -1, "time_to_click_ms": 100},
        {"x": 50, "y": 50},
    ],
)
def test_click_payload_validation(payload: dict) -> None:
    with pytest.raises(ValidationError):
        ClickSubmit(**payload)
