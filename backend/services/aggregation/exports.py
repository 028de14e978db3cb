from __future__ import annotations

from typing import Any, assert_never

from domain import StudyType
from .card_sort import build_category_matrix, classify, resolve_placement
from .first_click import click_task_id
from .snapshot import CompletedParticipant, StudySnapshot
from .tree_test import TreeArena, build_attempt_row, correct_answer_label

UNPLACED_CELL = "-"

TREE_TEST_COLUMNS = [
    "Task",
    "Participant",
    "Selected Answer",
    "Correct Answer",
    "Path Taken",
    "Is Correct",
    "Time (seconds)",
]

FIRST_CLICK_COLUMNS = [
    "Participant",
    "X (%)",
    "Y (%)",
    "Time (ms)",
    "Task",
    "Timed Out",
]


def participant_label(number: int) -> str:
    return f"Participant {number}"


def _csv_bool(value: bool) -> str:
    return "true" if value else "false"


def build_card_sort_header(snapshot: StudySnapshot) -> list[str]:
    return ["Card"] + [
        participant_label(number) for number in range(1, len(snapshot.participants) + 1)
    ]


def build_card_sort_rows(snapshot: StudySnapshot) -> list[list[object]]:
    matrix = build_category_matrix(snapshot)
    return [
        [card.label]
        + [matrix[p.id].get(card.id, UNPLACED_CELL) for p in snapshot.participants]
        for card in snapshot.content.cards
    ]


def build_tree_test_rows(snapshot: StudySnapshot) -> list[list[object]]:
    arena = TreeArena(snapshot.content.tree_nodes)
    rows: list[list[object]] = []
    for task in snapshot.content.tasks:
        for participant in snapshot.participants:
            for attempt in participant.tree_test_results:
                if attempt.task_id != task.id:
                    continue
                row = build_attempt_row(snapshot, arena, participant, attempt)
                rows.append(
                    [
                        task.question,
                        participant_label(row.participant_number),
                        row.selected_label,
                        row.correct_label,
                        row.path_text,
                        _csv_bool(row.is_correct),
                        f"{row.time_spent_seconds:.1f}",
                    ]
                )
    return rows


def build_first_click_rows(snapshot: StudySnapshot) -> list[list[object]]:
    first_task_id = snapshot.content.first_task_id
    rows: list[list[object]] = []
    for task in snapshot.content.tasks:
        for number, participant in enumerate(snapshot.participants, start=1):
            for click in participant.click_results:
                if click_task_id(click, first_task_id) != task.id:
                    continue
                rows.append(
                    [
                        participant_label(number),
                        f"{click.x:.2f}",
                        f"{click.y:.2f}",
                        click.time_to_click_ms,
                        task.question,
                        _csv_bool(click.timed_out),
                    ]
                )
    return rows


def build_csv_header(snapshot: StudySnapshot) -> list[str]:
    match snapshot.study.type:
        case StudyType.CARD_SORTING:
            return build_card_sort_header(snapshot)
        case StudyType.TREE_TESTING:
            return list(TREE_TEST_COLUMNS)
        case StudyType.FIRST_CLICK:
            return list(FIRST_CLICK_COLUMNS)
        case _:
            assert_never(snapshot.study.type)


def build_csv_rows(snapshot: StudySnapshot) -> list[list[object]]:
    match snapshot.study.type:
        case StudyType.CARD_SORTING:
            return build_card_sort_rows(snapshot)
        case StudyType.TREE_TESTING:
            return build_tree_test_rows(snapshot)
        case StudyType.FIRST_CLICK:
            return build_first_click_rows(snapshot)
        case _:
            assert_never(snapshot.study.type)


def _study_block(snapshot: StudySnapshot) -> dict[str, Any]:
    study = snapshot.study
    block: dict[str, Any] = {
        "id": study.id,
        "title": study.title,
        "type": study.type.value,
    }
    if study.type is StudyType.CARD_SORTING:
        block["sorting_type"] = study.sorting_type.value if study.sorting_type else None
    return block


def _participant_block(
    number: int,
    participant: CompletedParticipant,
    key: str,
    items: list[dict[str, Any]],
) -> dict[str, Any]:
    return {
        "participant_number": number,
        "participant_id": participant.id,
        "started_at": participant.started_at.isoformat(),
        "completed_at": participant.completed_at.isoformat(),
        key: items,
    }


def build_card_sort_document(snapshot: StudySnapshot) -> dict[str, Any]:
    content = snapshot.content
    predefined_names = content.predefined_names
    participants = []
    for number, participant in enumerate(snapshot.participants, start=1):
        results = []
        for raw in participant.card_sort_results:
            placement = resolve_placement(raw, content)
            results.append(
                {
                    "card_id": placement.card_id,
                    "card_label": content.card_label(placement.card_id),
                    "category_id": placement.category_id,
                    "category_name": placement.category_name,
                    "original_category_name": placement.original_category_name,
                    "category_type": classify(placement, predefined_names).value,
                }
            )
        participants.append(_participant_block(number, participant, "results", results))

    return {
        "study": _study_block(snapshot),
        "cards": [{"id": c.id, "label": c.label, "order": c.order} for c in content.cards],
        "categories": [
            {"id": c.id, "name": c.name, "order": c.order} for c in content.categories
        ],
        "participants": participants,
    }


def build_tree_test_document(snapshot: StudySnapshot) -> dict[str, Any]:
    content = snapshot.content
    arena = TreeArena(content.tree_nodes)
    participants = []
    for number, participant in enumerate(snapshot.participants, start=1):
        results = []
        for attempt in participant.tree_test_results:
            row = build_attempt_row(snapshot, arena, participant, attempt)
            results.append(
                {
                    "task_id": row.task_id,
                    "task_question": row.task_question,
                    "selected_answer": {
                        "node_id": row.selected_node_id,
                        "label": row.selected_label,
                    },
                    "correct_answer": {
                        "node_id": row.correct_node_id,
                        "label": row.correct_label,
                    },
                    "path_taken": {
                        "node_ids": list(row.path),
                        "labels": list(row.path_labels),
                        "text": row.path_text,
                    },
                    "is_correct": row.is_correct,
                    "time_spent_ms": row.time_spent_ms,
                }
            )
        participants.append(_participant_block(number, participant, "results", results))

    return {
        "study": _study_block(snapshot),
        "tree_nodes": [
            {"id": n.id, "label": n.label, "parent_id": n.parent_id, "order": n.order}
            for n in content.tree_nodes
        ],
        "tasks": [
            {
                "id": task.id,
                "question": task.question,
                "correct_answer": {
                    "node_id": task.correct_node_id,
                    "label": correct_answer_label(task, arena),
                },
            }
            for task in content.tasks
        ],
        "participants": participants,
    }


def build_first_click_document(snapshot: StudySnapshot) -> dict[str, Any]:
    content = snapshot.content
    first_task_id = content.first_task_id
    participants = []
    for number, participant in enumerate(snapshot.participants, start=1):
        clicks = []
        for click in participant.click_results:
            task_id = click_task_id(click, first_task_id)
            clicks.append(
                {
                    "task_id": task_id,
                    "task_question": content.task_question(task_id),
                    "x": click.x,
                    "y": click.y,
                    "time_to_click_ms": click.time_to_click_ms,
                    "timed_out": click.timed_out,
                }
            )
        participants.append(_participant_block(number, participant, "clicks", clicks))

    return {
        "study": _study_block(snapshot),
        "tasks": [
            {
                "id": task.id,
                "question": task.question,
                "image_url": task.image_url,
                "display_time_seconds": task.display_time_seconds,
            }
            for task in content.tasks
        ],
        "participants": participants,
    }


def build_export_document(snapshot: StudySnapshot) -> dict[str, Any]:
    match snapshot.study.type:
        case StudyType.CARD_SORTING:
            return build_card_sort_document(snapshot)
        case StudyType.TREE_TESTING:
            return build_tree_test_document(snapshot)
        case StudyType.FIRST_CLICK:
            return build_first_click_document(snapshot)
        case _:
            assert_never(snapshot.study.type)
