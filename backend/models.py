"""Database models using SQLModel.

These models are the source of truth for the schema. Database migrations
are generated from these definitions using `alembic revision --autogenerate`,
then reviewed and committed.

Result tables keep card/category/node/task ids as plain strings rather than
foreign keys: content may be deleted after responses exist, and the results
engine renders such references with placeholder labels.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    text,
)
from sqlmodel import Field, SQLModel

from domain import StudyStatus

DEFAULT_DISPLAY_TIME_SECONDS = 5
MIN_DISPLAY_TIME_SECONDS = 3
MAX_DISPLAY_TIME_SECONDS = 12


def new_id() -> str:
    return uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _id_column() -> Column:
    return Column(String(32), primary_key=True)


def _study_fk_column() -> Column:
    return Column(
        String(32),
        ForeignKey("studies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _participant_fk_column() -> Column:
    return Column(
        String(32),
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _order_column() -> Column:
    return Column("order", Integer, nullable=False, server_default=text("0"))


def _position_column() -> Column:
    return Column(Integer, nullable=False, server_default=text("0"))


class Study(SQLModel, table=True):
    __tablename__ = "studies"

    id: str = Field(default_factory=new_id, sa_column=_id_column())
    title: str = Field(sa_column=Column(String(255), nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    type: str = Field(sa_column=Column(String(16), nullable=False))
    status: str = Field(
        default=StudyStatus.DRAFT.value,
        sa_column=Column(String(16), nullable=False, server_default=text("'DRAFT'")),
    )
    sorting_type: Optional[str] = Field(
        default=None,
        sa_column=Column(String(16), nullable=True),
    )  # card sorting only
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=text("CURRENT_TIMESTAMP"),
        ),
    )


class Card(SQLModel, table=True):
    __tablename__ = "cards"

    id: str = Field(default_factory=new_id, sa_column=_id_column())
    study_id: str = Field(sa_column=_study_fk_column())
    label: str = Field(sa_column=Column(String(255), nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    order: int = Field(default=0, sa_column=_order_column())


class Category(SQLModel, table=True):
    __tablename__ = "categories"

    id: str = Field(default_factory=new_id, sa_column=_id_column())
    study_id: str = Field(sa_column=_study_fk_column())
    name: str = Field(sa_column=Column(String(255), nullable=False))
    order: int = Field(default=0, sa_column=_order_column())
    is_user_created: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default=text("false")),
    )


class TreeNode(SQLModel, table=True):
    __tablename__ = "tree_nodes"

    id: str = Field(default_factory=new_id, sa_column=_id_column())
    study_id: str = Field(sa_column=_study_fk_column())
    label: str = Field(sa_column=Column(String(255), nullable=False))
    parent_id: Optional[str] = Field(
        default=None,
        sa_column=Column(
            String(32),
            ForeignKey("tree_nodes.id", ondelete="CASCADE"),
            nullable=True,
        ),
    )
    order: int = Field(default=0, sa_column=_order_column())  # dense per sibling group


class Task(SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint(
            "display_time_seconds BETWEEN 3 AND 12",
            name="ck_task_display_time_range",
        ),
    )

    id: str = Field(default_factory=new_id, sa_column=_id_column())
    study_id: str = Field(sa_column=_study_fk_column())
    question: str = Field(sa_column=Column(Text, nullable=False))
    correct_node_id: Optional[str] = Field(
        default=None,
        sa_column=Column(
            String(32),
            ForeignKey("tree_nodes.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    image_url: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    display_time_seconds: int = Field(
        default=DEFAULT_DISPLAY_TIME_SECONDS,
        sa_column=Column(Integer, nullable=False, server_default=text("5")),
    )
    order: int = Field(default=0, sa_column=_order_column())


class Participant(SQLModel, table=True):
    __tablename__ = "participants"

    id: str = Field(default_factory=new_id, sa_column=_id_column())
    study_id: str = Field(sa_column=_study_fk_column())
    started_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=text("CURRENT_TIMESTAMP"),
        ),
    )
    completed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )


class CardSortResult(SQLModel, table=True):
    __tablename__ = "card_sort_results"

    id: str = Field(default_factory=new_id, sa_column=_id_column())
    participant_id: str = Field(sa_column=_participant_fk_column())
    position: int = Field(default=0, sa_column=_position_column())  # index within the submitted batch
    card_id: str = Field(sa_column=Column(String(32), nullable=False))
    category_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(32), nullable=True),
    )  # set only for an unmodified predefined category
    category_name: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
    )
    original_category_name: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
    )


class TreeTestResult(SQLModel, table=True):
    __tablename__ = "tree_test_results"

    id: str = Field(default_factory=new_id, sa_column=_id_column())
    participant_id: str = Field(sa_column=_participant_fk_column())
    position: int = Field(default=0, sa_column=_position_column())  # index within the submitted batch
    task_id: str = Field(sa_column=Column(String(32), nullable=False))
    selected_path: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    selected_node_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(32), nullable=True),
    )
    is_correct: bool = Field(sa_column=Column(Boolean, nullable=False))
    time_spent_ms: int = Field(sa_column=Column(Integer, nullable=False))


class ClickResult(SQLModel, table=True):
    __tablename__ = "click_results"
    __table_args__ = (
        CheckConstraint("x >= 0 AND x <= 100", name="ck_click_x_range"),
        CheckConstraint("y >= 0 AND y <= 100", name="ck_click_y_range"),
    )

    id: str = Field(default_factory=new_id, sa_column=_id_column())
    participant_id: str = Field(sa_column=_participant_fk_column())
    position: int = Field(default=0, sa_column=_position_column())  # index within the submitted batch
    task_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(32), nullable=True),
    )  # NULL rows predate multi-task studies and belong to the first task
    x: float = Field(sa_column=Column(Float, nullable=False))
    y: float = Field(sa_column=Column(Float, nullable=False))
    time_to_click_ms: int = Field(sa_column=Column(Integer, nullable=False))
    timed_out: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default=text("false")),
    )
