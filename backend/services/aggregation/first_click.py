"""First-click aggregation and heatmap render plans.

Clicks are stored as percentages of the task image, so they only become pixels
here, against whatever canvas size the renderer asks for. The plan draws one
alpha-blended radial gradient per click; dense areas emerge from the
renderer's compositing, not from binning.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from domain import ALL_FILTER
from .snapshot import ClickRecord, StudySnapshot, TaskRecord

TIMEOUT_X = 50.0
TIMEOUT_Y = 50.0

GRADIENT_RADIUS_PX = 30
GRADIENT_INNER_COLOR = "rgba(255, 0, 0, 0.6)"
GRADIENT_OUTER_COLOR = "rgba(255, 0, 0, 0)"

MARKER_RADIUS_PX = 6
MARKER_BORDER_COLOR = "white"
MARKER_BORDER_WIDTH_PX = 2
SINGLE_PARTICIPANT_COLOR = "rgba(255, 0, 0, 0.8)"
PARTICIPANT_COLORS = (
    "rgba(255, 0, 0, 0.8)",
    "rgba(0, 255, 0, 0.8)",
    "rgba(0, 0, 255, 0.8)",
    "rgba(255, 255, 0, 0.8)",
    "rgba(255, 0, 255, 0.8)",
    "rgba(0, 255, 255, 0.8)",
    "rgba(255, 165, 0, 0.8)",
    "rgba(128, 0, 128, 0.8)",
)


def build_timeout_click(task: TaskRecord) -> ClickRecord:
    """Sentinel recorded when a task auto-advances without a click."""
    return ClickRecord(
        x=TIMEOUT_X,
        y=TIMEOUT_Y,
        time_to_click_ms=task.display_time_seconds * 1000,
        task_id=task.id,
        timed_out=True,
    )


def click_task_id(click: ClickRecord, first_task_id: Optional[str]) -> Optional[str]:
    # Clicks recorded before studies had several tasks belong to the first one.
    return click.task_id or first_task_id


@dataclass(frozen=True)
class ClickPoint:
    participant_id: str
    participant_number: int
    task_id: Optional[str]
    x: float
    y: float
    time_to_click_ms: int
    timed_out: bool = False


def aggregate_clicks(
    snapshot: StudySnapshot,
    task_id: str,
    participant_id: str = ALL_FILTER,
    include_timeouts: bool = False,
) -> list[ClickPoint]:
    first_task_id = snapshot.content.first_task_id
    points: list[ClickPoint] = []
    for participant in snapshot.select_participants(participant_id):
        number = snapshot.participant_number(participant.id)
        for click in participant.click_results:
            if click_task_id(click, first_task_id) != task_id:
                continue
            if click.timed_out and not include_timeouts:
                continue
            points.append(
                ClickPoint(
                    participant_id=participant.id,
                    participant_number=number,
                    task_id=task_id,
                    x=click.x,
                    y=click.y,
                    time_to_click_ms=click.time_to_click_ms,
                    timed_out=click.timed_out,
                )
            )
    return points


def average_time_seconds(points: Sequence[ClickPoint]) -> Optional[float]:
    if not points:
        return None
    return sum(p.time_to_click_ms for p in points) / len(points) / 1000


def to_pixel(x: float, y: float, width: float, height: float) -> tuple[float, float]:
    return x / 100 * width, y / 100 * height


def to_percent(pixel_x: float, pixel_y: float, width: float, height: float) -> tuple[float, float]:
    return pixel_x / width * 100, pixel_y / height * 100


def participant_color(participant_number: int) -> str:
    return PARTICIPANT_COLORS[(participant_number - 1) % len(PARTICIPANT_COLORS)]


@dataclass(frozen=True)
class GradientSpot:
    x: float
    y: float
    radius: int = GRADIENT_RADIUS_PX
    inner_color: str = GRADIENT_INNER_COLOR
    outer_color: str = GRADIENT_OUTER_COLOR


@dataclass(frozen=True)
class Marker:
    x: float
    y: float
    color: str
    participant_number: int
    label: Optional[str] = None
    radius: int = MARKER_RADIUS_PX
    border_color: str = MARKER_BORDER_COLOR
    border_width: int = MARKER_BORDER_WIDTH_PX


@dataclass(frozen=True)
class LegendEntry:
    participant_number: int
    participant_id: str
    color: str


@dataclass(frozen=True)
class HeatmapPlan:
    width: int
    height: int
    gradients: tuple[GradientSpot, ...]
    markers: tuple[Marker, ...]
    legend: tuple[LegendEntry, ...]


def render_heatmap(
    points: Sequence[ClickPoint],
    canvas_width: int,
    canvas_height: int,
    color_by_participant: bool = True,
) -> HeatmapPlan:
    """Layers in draw order: every gradient first, then every marker on top."""
    if canvas_width <= 0 or canvas_height <= 0:
        raise ValueError("Canvas dimensions must be positive")

    gradients: list[GradientSpot] = []
    markers: list[Marker] = []
    legend: dict[int, LegendEntry] = {}

    for point in points:
        x, y = to_pixel(point.x, point.y, canvas_width, canvas_height)
        gradients.append(GradientSpot(x=x, y=y))

        if color_by_participant:
            color = participant_color(point.participant_number)
            label = str(point.participant_number)
            legend.setdefault(
                point.participant_number,
                LegendEntry(
                    participant_number=point.participant_number,
                    participant_id=point.participant_id,
                    color=color,
                ),
            )
        else:
            color = SINGLE_PARTICIPANT_COLOR
            label = None
        markers.append(
            Marker(
                x=x,
                y=y,
                color=color,
                participant_number=point.participant_number,
                label=label,
            )
        )

    return HeatmapPlan(
        width=canvas_width,
        height=canvas_height,
        gradients=tuple(gradients),
        markers=tuple(markers),
        legend=tuple(legend[number] for number in sorted(legend)),
    )
