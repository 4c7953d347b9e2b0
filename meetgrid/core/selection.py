"""
MeetGrid: Selection/Gesture Mapper.

Translates pointer motion over the availability grid (columns = dates,
rows = hours) into slot ids. Supports tap-to-toggle on one cell and
drag-to-select a rectangle of cells.

Everything here is synchronous: it runs inside the UI's pointer callbacks,
so updates are throttled instead of awaited.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, NamedTuple

from meetgrid.config import settings
from meetgrid.core.scoring import rolling_dates
from meetgrid.data.models import TimeSlotKey

if TYPE_CHECKING:
    from meetgrid.data.models import AvailabilityRecord

logger = logging.getLogger(__name__)


class CellPosition(NamedTuple):
    row: int
    column: int


@dataclass(frozen=True)
class GridLayout:
    """Pixel geometry of the rendered grid."""

    cell_width: float
    cell_height: float
    row_count: int
    column_count: int
    label_width: float = 0       # hour-label gutter on the left
    header_height: float = 0     # date header row on top
    scroll_offset: float = 0     # vertical scroll of the grid body

    @property
    def is_empty(self) -> bool:
        return self.row_count <= 0 or self.column_count <= 0


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

def coordinate_to_cell(x: float, y: float, layout: GridLayout) -> CellPosition | None:
    """Map a pointer coordinate to the grid cell under it.

    Coordinates outside the grid clamp to the nearest edge cell. Returns
    None only when the grid has no rows or no columns.
    """
    if layout.is_empty:
        return None
    column = math.floor((x - layout.label_width) / layout.cell_width)
    row = math.floor((y - layout.header_height + layout.scroll_offset) / layout.cell_height)
    return CellPosition(
        row=max(0, min(row, layout.row_count - 1)),
        column=max(0, min(column, layout.column_count - 1)),
    )


def selection_rectangle(start: CellPosition, end: CellPosition) -> list[CellPosition]:
    """All cells in the inclusive span between start and end, row-major.

    The result does not depend on drag direction.
    """
    min_row, max_row = sorted((start.row, end.row))
    min_col, max_col = sorted((start.column, end.column))
    return [
        CellPosition(row, column)
        for row in range(min_row, max_row + 1)
        for column in range(min_col, max_col + 1)
    ]


def is_within_bounds(position: CellPosition, layout: GridLayout) -> bool:
    return 0 <= position.row < layout.row_count and 0 <= position.column < layout.column_count


def cell_center(position: CellPosition, layout: GridLayout) -> tuple[float, float]:
    """Pointer coordinate of the middle of a cell (inverse of coordinate_to_cell)."""
    x = layout.label_width + position.column * layout.cell_width + layout.cell_width / 2
    y = (
        layout.header_height
        + position.row * layout.cell_height
        + layout.cell_height / 2
        - layout.scroll_offset
    )
    return x, y


def snap_to_grid(x: float, y: float, layout: GridLayout) -> tuple[float, float] | None:
    position = coordinate_to_cell(x, y, layout)
    if position is None:
        return None
    return cell_center(position, layout)


def selection_direction(start: CellPosition, current: CellPosition) -> str:
    """Dominant drag direction; a single cell counts as diagonal."""
    delta_row = abs(current.row - start.row)
    delta_col = abs(current.column - start.column)
    if delta_row == 0 and delta_col > 0:
        return "horizontal"
    if delta_col == 0 and delta_row > 0:
        return "vertical"
    return "diagonal"


class Throttle:
    """Lets a call through at most once per interval."""

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._interval = interval
        self._clock = clock
        self._last: float | None = None

    def ready(self) -> bool:
        now = self._clock()
        if self._last is not None and now - self._last < self._interval:
            return False
        self._last = now
        return True

    def reset(self) -> None:
        self._last = None


# ---------------------------------------------------------------------------
# Cells -> slots
# ---------------------------------------------------------------------------

class SlotGrid:
    """Resolves (row, column) to a TimeSlotKey.

    A None entry in dates is a column that is not rendered (e.g. a past
    date); cells in it resolve to None and are skipped.
    """

    def __init__(self, dates: list[str | None], hours: Iterable[int] = range(24)) -> None:
        self.dates = list(dates)
        self.hours = list(hours)

    @classmethod
    def rolling(
        cls,
        start: str,
        days: int,
        hours: Iterable[int] = range(24),
        not_before: str | None = None,
    ) -> SlotGrid:
        """A window of consecutive dates. Dates before not_before are blanked."""
        dates: list[str | None] = [
            d if not_before is None or d >= not_before else None
            for d in rolling_dates(start, days)
        ]
        return cls(dates, hours)

    @property
    def row_count(self) -> int:
        return len(self.hours)

    @property
    def column_count(self) -> int:
        return len(self.dates)

    def slot_at(self, row: int, column: int) -> TimeSlotKey | None:
        if not (0 <= row < self.row_count and 0 <= column < self.column_count):
            return None
        date = self.dates[column]
        if date is None:
            return None
        return TimeSlotKey(date, self.hours[row])

    def slot_ids(self, cells: Iterable[CellPosition]) -> list[str]:
        ids: list[str] = []
        for cell in cells:
            slot = self.slot_at(cell.row, cell.column)
            if slot is not None:
                ids.append(slot.slot_id)
        return ids


# ---------------------------------------------------------------------------
# Gesture tracking
# ---------------------------------------------------------------------------

@dataclass
class SelectionState:
    """In-progress drag. selected_cells holds slot ids, not grid positions."""

    is_selecting: bool = False
    start_position: CellPosition | None = None
    current_position: CellPosition | None = None
    selected_cells: list[str] = field(default_factory=list)


@dataclass
class Selection:
    """A finished gesture. A tap carries exactly one slot id (or none)."""

    slot_ids: list[str]
    is_tap: bool = False


class SelectionTracker:
    """Stateful handler for the UI's pointer callbacks."""

    def __init__(
        self,
        layout: GridLayout,
        grid: SlotGrid,
        throttle_seconds: float | None = None,
        tap_threshold: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if throttle_seconds is None:
            throttle_seconds = settings.GESTURE_THROTTLE_SECONDS
        if tap_threshold is None:
            tap_threshold = settings.GESTURE_TAP_THRESHOLD

        self.layout = layout
        self.grid = grid
        self.state = SelectionState()
        self._tap_threshold = tap_threshold
        self._throttle = Throttle(throttle_seconds, clock)
        self._origin: tuple[float, float] | None = None
        self._moved = False
        self._skipped_point: tuple[float, float] | None = None

    @property
    def selected_slot_ids(self) -> list[str]:
        return list(self.state.selected_cells)

    def on_selection_start(self, x: float, y: float) -> list[str]:
        position = coordinate_to_cell(x, y, self.layout)
        self._throttle.reset()
        self._origin = (x, y)
        self._moved = False
        self._skipped_point = None
        if position is None:
            # Nothing rendered yet
            self.state = SelectionState()
            return []
        self.state = SelectionState(
            is_selecting=True,
            start_position=position,
            current_position=position,
            selected_cells=self.grid.slot_ids([position]),
        )
        return self.selected_slot_ids

    def on_selection_update(self, x: float, y: float) -> list[str] | None:
        """Extend the rectangle to (x, y). Returns None when throttled or idle."""
        if not self.state.is_selecting:
            return None
        self._track_motion(x, y)
        if not self._throttle.ready():
            self._skipped_point = (x, y)
            return None
        self._skipped_point = None
        self._update_rectangle(x, y)
        return self.selected_slot_ids

    def on_selection_end(self, x: float | None = None, y: float | None = None) -> Selection:
        """Finish the gesture and return what it selected.

        The last pointer position is always applied, even if its update was
        throttled. A gesture that never moved past the tap threshold is a
        tap on the start cell.
        """
        if not self.state.is_selecting:
            self._reset()
            return Selection(slot_ids=[])

        if x is not None and y is not None:
            self._track_motion(x, y)
            final_point: tuple[float, float] | None = (x, y)
        else:
            final_point = self._skipped_point

        if not self._moved:
            start = self.state.start_position
            selection = Selection(slot_ids=self.grid.slot_ids([start]), is_tap=True)
        else:
            if final_point is not None:
                self._update_rectangle(*final_point)
            selection = Selection(slot_ids=self.selected_slot_ids)

        logger.debug(
            "Selection finished: %d slot(s), tap=%s", len(selection.slot_ids), selection.is_tap,
        )
        self._reset()
        return selection

    def on_single_tap(self, x: float, y: float) -> str | None:
        position = coordinate_to_cell(x, y, self.layout)
        if position is None:
            return None
        slot = self.grid.slot_at(position.row, position.column)
        return slot.slot_id if slot else None

    def _track_motion(self, x: float, y: float) -> None:
        if self._moved or self._origin is None:
            return
        if math.hypot(x - self._origin[0], y - self._origin[1]) > self._tap_threshold:
            self._moved = True

    def _update_rectangle(self, x: float, y: float) -> None:
        position = coordinate_to_cell(x, y, self.layout)
        if position is None or self.state.start_position is None:
            return
        self.state.current_position = position
        self.state.selected_cells = self.grid.slot_ids(
            selection_rectangle(self.state.start_position, position)
        )

    def _reset(self) -> None:
        self.state = SelectionState()
        self._origin = None
        self._moved = False
        self._skipped_point = None


# ---------------------------------------------------------------------------
# Applying a selection to a record
# ---------------------------------------------------------------------------

def commit_selection(
    record: AvailabilityRecord,
    slot_ids: Iterable[str],
    available: bool,
) -> AvailabilityRecord:
    """Return a clone of record with every slot in slot_ids set to available.

    Raises:
        ValueError: on a malformed slot id (the input record is untouched).
    """
    keys = [TimeSlotKey.from_slot_id(slot_id) for slot_id in slot_ids]
    updated = record.clone()
    for key in keys:
        updated.set_slot(key.date, key.hour, available)
    return updated


def toggle_cell(record: AvailabilityRecord, slot_id: str) -> AvailabilityRecord:
    key = TimeSlotKey.from_slot_id(slot_id)
    updated = record.clone()
    updated.set_slot(key.date, key.hour, not record.get_slot(key.date, key.hour))
    return updated


def drag_target_state(record: AvailabilityRecord, slot_id: str) -> bool:
    """Value a drag starting on slot_id applies: starting on a free cell deselects."""
    key = TimeSlotKey.from_slot_id(slot_id)
    return not record.get_slot(key.date, key.hour)
