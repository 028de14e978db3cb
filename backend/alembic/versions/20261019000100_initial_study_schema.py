"""initial study schema

Revision ID: 20261019000100
Revises:
Create Date: 2026-10-19 00:01:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019000100"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column("id", sa.String(length=32), primary_key=True, nullable=False)


def _study_fk_column() -> sa.Column:
    return sa.Column(
        "study_id",
        sa.String(length=32),
        sa.ForeignKey("studies.id", ondelete="CASCADE"),
        nullable=False,
    )


def _participant_fk_column() -> sa.Column:
    return sa.Column(
        "participant_id",
        sa.String(length=32),
        sa.ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
    )


def _order_column(name: str = "order") -> sa.Column:
    return sa.Column(name, sa.Integer(), nullable=False, server_default=sa.text("0"))


def upgrade() -> None:
    op.create_table(
        "studies",
        _id_column(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column(
            "status",
            sa.String(length=16),
            nullable=False,
            server_default=sa.text("'DRAFT'"),
        ),
        sa.Column("sorting_type", sa.String(length=16), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "cards",
        _id_column(),
        _study_fk_column(),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _order_column(),
    )
    op.create_index("ix_cards_study_id", "cards", ["study_id"])

    op.create_table(
        "categories",
        _id_column(),
        _study_fk_column(),
        sa.Column("name", sa.String(length=255), nullable=False),
        _order_column(),
        sa.Column(
            "is_user_created",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
    )
    op.create_index("ix_categories_study_id", "categories", ["study_id"])

    op.create_table(
        "tree_nodes",
        _id_column(),
        _study_fk_column(),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column(
            "parent_id",
            sa.String(length=32),
            sa.ForeignKey("tree_nodes.id", ondelete="CASCADE"),
            nullable=True,
        ),
        _order_column(),
    )
    op.create_index("ix_tree_nodes_study_id", "tree_nodes", ["study_id"])

    op.create_table(
        "tasks",
        _id_column(),
        _study_fk_column(),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column(
            "correct_node_id",
            sa.String(length=32),
            sa.ForeignKey("tree_nodes.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column(
            "display_time_seconds",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("5"),
        ),
        _order_column(),
        sa.CheckConstraint(
            "display_time_seconds BETWEEN 3 AND 12",
            name="ck_task_display_time_range",
        ),
    )
    op.create_index("ix_tasks_study_id", "tasks", ["study_id"])

    op.create_table(
        "participants",
        _id_column(),
        _study_fk_column(),
        sa.Column(
            "started_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_participants_study_id", "participants", ["study_id"])

    op.create_table(
        "card_sort_results",
        _id_column(),
        _participant_fk_column(),
        _order_column("position"),
        sa.Column("card_id", sa.String(length=32), nullable=False),
        sa.Column("category_id", sa.String(length=32), nullable=True),
        sa.Column("category_name", sa.String(length=255), nullable=True),
        sa.Column("original_category_name", sa.String(length=255), nullable=True),
    )
    op.create_index(
        "ix_card_sort_results_participant_id",
        "card_sort_results",
        ["participant_id"],
    )

    op.create_table(
        "tree_test_results",
        _id_column(),
        _participant_fk_column(),
        _order_column("position"),
        sa.Column("task_id", sa.String(length=32), nullable=False),
        sa.Column("selected_path", sa.JSON(), nullable=False),
        sa.Column("selected_node_id", sa.String(length=32), nullable=True),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
        sa.Column("time_spent_ms", sa.Integer(), nullable=False),
    )
    op.create_index(
        "ix_tree_test_results_participant_id",
        "tree_test_results",
        ["participant_id"],
    )

    op.create_table(
        "click_results",
        _id_column(),
        _participant_fk_column(),
        _order_column("position"),
        sa.Column("task_id", sa.String(length=32), nullable=True),
        sa.Column("x", sa.Float(), nullable=False),
        sa.Column("y", sa.Float(), nullable=False),
        sa.Column("time_to_click_ms", sa.Integer(), nullable=False),
        sa.Column(
            "timed_out",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.CheckConstraint("x >= 0 AND x <= 100", name="ck_click_x_range"),
        sa.CheckConstraint("y >= 0 AND y <= 100", name="ck_click_y_range"),
    )
    op.create_index("ix_click_results_participant_id", "click_results", ["participant_id"])


def downgrade() -> None:
    op.drop_index("ix_click_results_participant_id", table_name="click_results")
    op.drop_table("click_results")
    op.drop_index("ix_tree_test_results_participant_id", table_name="tree_test_results")
    op.drop_table("tree_test_results")
    op.drop_index("ix_card_sort_results_participant_id", table_name="card_sort_results")
    op.drop_table("card_sort_results")
    op.drop_index("ix_participants_study_id", table_name="participants")
    op.drop_table("participants")
    op.drop_index("ix_tasks_study_id", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("ix_tree_nodes_study_id", table_name="tree_nodes")
    op.drop_table("tree_nodes")
    op.drop_index("ix_categories_study_id", table_name="categories")
    op.drop_table("categories")
    op.drop_index("ix_cards_study_id", table_name="cards")
    op.drop_table("cards")
    op.drop_table("studies")
