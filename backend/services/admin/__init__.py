from __future__ import annotations

from .content import create_content, delete_content, reorder_content, update_content
from .exports import build_export_csv_chunks, build_export_filename, build_export_json
from .results import get_heatmap, get_study_results
from .studies import create_study, delete_study, get_study, list_studies, update_study

__all__ = [
    "build_export_csv_chunks",
    "build_export_filename",
    "build_export_json",
    "create_content",
    "create_study",
    "delete_content",
    "delete_study",
    "get_heatmap",
    "get_study",
    "get_study_results",
    "list_studies",
    "reorder_content",
    "update_content",
    "update_study",
]
