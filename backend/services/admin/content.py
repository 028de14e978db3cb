from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Optional

from fastapi import HTTPException
from pydantic import BaseModel

from domain import ContentKind
from models import Card, Category, Study, Task, TreeNode
from services.store import ContentRow, PersistenceFailure, ResultStore
from .mappers import build_content_response
from .queries import fetch_content_or_404, fetch_study_or_404
from .validators import (
    validate_content_unlocked,
    validate_correct_node,
    validate_kind_for_study,
    validate_parent_node,
    validate_reorder_ids,
)

logger = logging.getLogger(__name__)


async def _fetch_editable_study(
    study_id: str,
    kind: ContentKind,
    store: ResultStore,
) -> Study:
    study = await fetch_study_or_404(study_id, store)
    validate_kind_for_study(study, kind)
    completed_count = await store.count_participants(study.id, completed_only=True)
    validate_content_unlocked(study, completed_count=completed_count)
    return study


def _sibling_group(rows: Sequence[ContentRow], parent_id: Optional[str]) -> list[ContentRow]:
    return [row for row in rows if row.parent_id == parent_id]


async def _validate_task_fields(study: Study, fields: dict[str, Any], store: ResultStore) -> None:
    node_id = fields.get("correct_node_id")
    if node_id is not None:
        node = await store.get_content(ContentKind.TREE_NODES, node_id)
        validate_correct_node(study, node)


async def _apply_order(rows: Sequence[ContentRow], store: ResultStore) -> None:
    try:
        await store.reorder_content(rows)
    except PersistenceFailure as exc:
        logger.error("Reorder failed: %s", exc)
        raise HTTPException(status_code=503, detail="Could not save the new order, please try again")


async def create_content(
    *,
    study_id: str,
    kind: ContentKind,
    payload: BaseModel,
    store: ResultStore,
) -> BaseModel:
    study = await _fetch_editable_study(study_id, kind, store)
    fields = payload.model_dump()
    existing = await store.list_content(study.id, kind)

    row: ContentRow
    if kind is ContentKind.CARDS:
        row = Card(study_id=study.id, order=len(existing), **fields)
    elif kind is ContentKind.CATEGORIES:
        row = Category(study_id=study.id, order=len(existing), **fields)
    elif kind is ContentKind.TREE_NODES:
        parent_id = fields.get("parent_id")
        if parent_id is not None:
            validate_parent_node(await store.get_content(ContentKind.TREE_NODES, parent_id), study)
        row = TreeNode(
            study_id=study.id,
            order=len(_sibling_group(existing, parent_id)),
            **fields,
        )
    else:
        await _validate_task_fields(study, fields, store)
        row = Task(study_id=study.id, order=len(existing), **fields)

    row = await store.save_content(row)
    logger.info("Added %s item: study_id=%s, id=%s", kind.value, study.id, row.id)
    return build_content_response(kind, row)


async def update_content(
    *,
    study_id: str,
    kind: ContentKind,
    item_id: str,
    payload: BaseModel,
    store: ResultStore,
) -> BaseModel:
    study = await _fetch_editable_study(study_id, kind, store)
    row = await fetch_content_or_404(study, kind, item_id, store)
    changes = payload.model_dump(exclude_unset=True)

    if kind is ContentKind.TASKS:
        await _validate_task_fields(study, changes, store)
    for field, value in changes.items():
        if value is None and field not in ("description", "correct_node_id", "image_url"):
            continue
        setattr(row, field, value)

    row = await store.save_content(row)
    return build_content_response(kind, row)


async def delete_content(
    *,
    study_id: str,
    kind: ContentKind,
    item_id: str,
    store: ResultStore,
) -> dict[str, str]:
    study = await _fetch_editable_study(study_id, kind, store)
    row = await fetch_content_or_404(study, kind, item_id, store)
    parent_id = getattr(row, "parent_id", None)

    await store.delete_content(row)

    remaining = await store.list_content(study.id, kind)
    if kind is ContentKind.TREE_NODES:
        remaining = _sibling_group(remaining, parent_id)
    if [r.order for r in remaining] != list(range(len(remaining))):
        await _apply_order(remaining, store)

    logger.info("Deleted %s item: study_id=%s, id=%s", kind.value, study.id, item_id)
    return {"message": "Item deleted successfully"}


async def reorder_content(
    *,
    study_id: str,
    kind: ContentKind,
    ids: list[str],
    store: ResultStore,
) -> list[BaseModel]:
    study = await _fetch_editable_study(study_id, kind, store)
    rows = await store.list_content(study.id, kind)

    group = rows
    if kind is ContentKind.TREE_NODES:
        by_id = {row.id: row for row in rows}
        first = by_id.get(ids[0])
        if first is None:
            raise HTTPException(status_code=400, detail=f"Unknown tree node: {ids[0]}")
        group = _sibling_group(rows, first.parent_id)

    validate_reorder_ids(ids, group)
    by_id = {row.id: row for row in group}
    ordered = [by_id[item_id] for item_id in ids]
    await _apply_order(ordered, store)

    return [build_content_response(kind, row) for row in ordered]
