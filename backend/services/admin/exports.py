from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable, Iterator
from typing import Any, Literal

from config import get_settings
from services.aggregation import build_csv_header, build_csv_rows, build_export_document
from services.store import ResultStore
from .queries import fetch_study_or_404, fetch_study_snapshot

logger = logging.getLogger(__name__)

ExportFormat = Literal["csv", "json"]


def build_export_filename(study_id: str, export_format: ExportFormat) -> str:
    return f"study-{study_id}-results.{export_format}"


def _resolve_batch_size(batch_size: int | None) -> int:
    if batch_size is not None:
        return batch_size
    return get_settings().exports.stream_batch_size


def _build_csv_chunk(rows: Iterable[list[object]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerows(rows)
    return output.getvalue()


def iter_csv_chunks(
    header: list[str],
    rows: list[list[object]],
    batch_size: int,
) -> Iterator[str]:
    yield _build_csv_chunk([header])
    for start in range(0, len(rows), batch_size):
        yield _build_csv_chunk(rows[start : start + batch_size])


async def build_export_csv_chunks(
    *,
    study_id: str,
    store: ResultStore,
    batch_size: int | None = None,
) -> Iterator[str]:
    """Loads the snapshot eagerly; the returned iterator only formats rows."""
    resolved_batch_size = _resolve_batch_size(batch_size)
    study = await fetch_study_or_404(study_id, store)
    snapshot = await fetch_study_snapshot(study, store)

    rows = build_csv_rows(snapshot)
    logger.info(
        "Exporting CSV: study_id=%s, participants=%s, rows=%s",
        study_id,
        len(snapshot.participants),
        len(rows),
    )
    return iter_csv_chunks(build_csv_header(snapshot), rows, resolved_batch_size)


async def build_export_json(
    *,
    study_id: str,
    store: ResultStore,
) -> dict[str, Any]:
    study = await fetch_study_or_404(study_id, store)
    snapshot = await fetch_study_snapshot(study, store)

    logger.info(
        "Exporting JSON: study_id=%s, participants=%s",
        study_id,
        len(snapshot.participants),
    )
    return build_export_document(snapshot)
