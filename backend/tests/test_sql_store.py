from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from config import Settings
from domain import StudyType
from models import ClickResult, Participant, Study, TreeTestResult
from services.store import PersistenceFailure, SqlResultStore

pytestmark = pytest.mark.usefixtures("reset_database")


@pytest.fixture
def run_store():
    url = Settings(_env_file=None).async_database_url

    def _run(operation):
        async def _with_store():
            engine = create_async_engine(url, poolclass=NullPool)
            session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            try:
                async with session_maker() as session:
                    return await operation(SqlResultStore(session))
            finally:
                await engine.dispose()

        return asyncio.run(_with_store())

    return _run


def _seed(run_store, study_type: StudyType, *participants: Participant) -> str:
    async def _create(store: SqlResultStore) -> str:
        study = await store.create_study(Study(title="Navigation", type=study_type.value))
        for participant in participants:
            participant.study_id = study.id
            await store.create_participant(participant)
        return study.id

    return run_store(_create)


def _count_rows(sync_engine, table: str, participant_id: str) -> int:
    with sync_engine.connect() as conn:
        return conn.execute(
            text(f"SELECT count(*) FROM {table} WHERE participant_id = :participant_id"),
            {"participant_id": participant_id},
        ).scalar_one()


def _attempt(task_id: str, path: list[str], *, correct: bool) -> TreeTestResult:
    return TreeTestResult(
        task_id=task_id,
        selected_path=path,
        selected_node_id=path[-1] if path else None,
        is_correct=correct,
        time_spent_ms=4000,
    )


def test_resubmission_replaces_rows_and_keeps_submitted_order(run_store, sync_engine) -> None:
    participant = Participant(id="p-tree")
    study_id = _seed(run_store, StudyType.TREE_TESTING, participant)

    run_store(
        lambda store: store.submit_participant_results(
            "p-tree",
            StudyType.TREE_TESTING,
            [_attempt("t-old", ["home"], correct=False)],
        )
    )
    run_store(
        lambda store: store.submit_participant_results(
            "p-tree",
            StudyType.TREE_TESTING,
            [
                _attempt("t2", ["home", "support"], correct=False),
                _attempt("t1", ["home", "products", "laptops"], correct=True),
            ],
        )
    )

    (completed,) = run_store(lambda store: store.get_completed_participants(study_id))

    assert _count_rows(sync_engine, "tree_test_results", "p-tree") == 2
    assert completed.completed_at is not None
    assert [attempt.task_id for attempt in completed.tree_test_results] == ["t2", "t1"]
    assert completed.tree_test_results[1].selected_path == ("home", "products", "laptops")
    assert completed.tree_test_results[1].selected_node_id == "laptops"
    assert completed.tree_test_results[1].is_correct is True


def test_failed_write_rolls_back_and_keeps_previous_rows(run_store, sync_engine) -> None:
    participant = Participant(id="p-click")
    study_id = _seed(run_store, StudyType.FIRST_CLICK, participant)
    run_store(
        lambda store: store.submit_participant_results(
            "p-click",
            StudyType.FIRST_CLICK,
            [ClickResult(task_id="t1", x=20, y=30, time_to_click_ms=900)],
        )
    )

    with pytest.raises(PersistenceFailure):
        run_store(
            lambda store: store.submit_participant_results(
                "p-click",
                StudyType.FIRST_CLICK,
                [ClickResult(task_id="t1", x=150, y=30, time_to_click_ms=900)],
            )
        )

    (completed,) = run_store(lambda store: store.get_completed_participants(study_id))
    assert _count_rows(sync_engine, "click_results", "p-click") == 1
    assert [(click.x, click.y) for click in completed.click_results] == [(20, 30)]


def test_completed_participants_are_fetched_by_start_time_then_id(run_store) -> None:
    started = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
    study_id = _seed(
        run_store,
        StudyType.FIRST_CLICK,
        Participant(id="p-late", started_at=started + timedelta(minutes=5)),
        Participant(id="p-b", started_at=started),
        Participant(id="p-a", started_at=started),
        Participant(id="p-unfinished", started_at=started - timedelta(minutes=5)),
    )
    for participant_id in ("p-late", "p-b", "p-a"):
        run_store(
            lambda store, participant_id=participant_id: store.submit_participant_results(
                participant_id,
                StudyType.FIRST_CLICK,
                [ClickResult(task_id="t1", x=50, y=50, time_to_click_ms=1000)],
            )
        )

    completed = run_store(lambda store: store.get_completed_participants(study_id))

    assert [participant.id for participant in completed] == ["p-a", "p-b", "p-late"]
    assert run_store(lambda store: store.count_participants(study_id)) == 4
    assert run_store(lambda store: store.count_participants(study_id, completed_only=True)) == 3
