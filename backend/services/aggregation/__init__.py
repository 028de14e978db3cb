from __future__ import annotations

from .card_sort import (
    CategoryGroup,
    SortedCard,
    classify,
    filter_by_category_type,
    filter_by_participant,
    group_by_category,
)
from .exports import build_csv_header, build_csv_rows, build_export_document
from .first_click import (
    ClickPoint,
    HeatmapPlan,
    aggregate_clicks,
    average_time_seconds,
    build_timeout_click,
    render_heatmap,
)
from .snapshot import StudySnapshot
from .tree_test import (
    NavigationError,
    TaskStats,
    TreeArena,
    TreeNavigation,
    TreeTestRun,
    filter_results,
    per_task_stats,
    score_selection,
)

__all__ = [
    "CategoryGroup",
    "ClickPoint",
    "HeatmapPlan",
    "NavigationError",
    "SortedCard",
    "StudySnapshot",
    "TaskStats",
    "TreeArena",
    "TreeNavigation",
    "TreeTestRun",
    "aggregate_clicks",
    "average_time_seconds",
    "build_csv_header",
    "build_csv_rows",
    "build_export_document",
    "build_timeout_click",
    "classify",
    "filter_by_category_type",
    "filter_by_participant",
    "filter_results",
    "group_by_category",
    "per_task_stats",
    "render_heatmap",
    "score_selection",
]
