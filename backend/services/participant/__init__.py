from __future__ import annotations

from .operations import get_public_study, start_participant, submit_results

__all__ = [
    "get_public_study",
    "start_participant",
    "submit_results",
]
