"""
The 3x3 board: cell storage and occupancy rules.
"""

from enum import Enum
from typing import List, Tuple

from .errors import OccupiedError, RangeError, ValidationError

BOARD_SIZE = 3

Coordinate = Tuple[int, int]
Snapshot = Tuple[Tuple["Cell", ...], ...]


class Cell(str, Enum):
    EMPTY = ""
    CROSS = "X"
    NOUGHT = "O"


MARKERS = (Cell.CROSS, Cell.NOUGHT)


def validate_indices(row, col):
    """Raise RangeError unless both indices are ints in [0, 2]."""
    for index in (row, col):
        # bool is an int subclass but never a valid index
        if not isinstance(index, int) or isinstance(index, bool):
            raise RangeError(f"Board indices must be integers, got {index!r}.")
        if not 0 <= index < BOARD_SIZE:
            raise RangeError(f"Board indices must be between 0 and 2 inclusive, got {index}.")


def validate_marker(marker) -> Cell:
    """Return the marker as a Cell, raising ValidationError unless it is X or O."""
    try:
        cell = Cell(marker)
    except ValueError:
        raise ValidationError(f"Unknown marker {marker!r}.") from None
    if cell not in MARKERS:
        raise ValidationError("Marker must be a cross or a nought.")
    return cell


# PUBLIC_INTERFACE
class Board:
    """
    A 3x3 grid of cells.

    Cells only go from EMPTY to a marker through place(); the only way back
    is clear(), which resets the whole grid.
    """

    def __init__(self):
        self._cells: List[List[Cell]] = [[Cell.EMPTY for _ in range(BOARD_SIZE)] for _ in range(BOARD_SIZE)]
        self._occupied = 0

    @property
    def occupied_count(self) -> int:
        return self._occupied

    # PUBLIC_INTERFACE
    def is_empty(self, row: int, col: int) -> bool:
        validate_indices(row, col)
        return self._cells[row][col] is Cell.EMPTY

    # PUBLIC_INTERFACE
    def value_at(self, row: int, col: int) -> Cell:
        validate_indices(row, col)
        return self._cells[row][col]

    # PUBLIC_INTERFACE
    def place(self, marker: Cell, row: int, col: int) -> "Board":
        """
        Put marker on (row, col).
        Raises RangeError, ValidationError or OccupiedError without touching the board.
        """
        validate_indices(row, col)
        cell = validate_marker(marker)
        if self._cells[row][col] is not Cell.EMPTY:
            raise OccupiedError(f"Cell ({row}, {col}) is already occupied.")
        self._cells[row][col] = cell
        self._occupied += 1
        return self

    def set_cross(self, row: int, col: int) -> "Board":
        return self.place(Cell.CROSS, row, col)

    def set_nought(self, row: int, col: int) -> "Board":
        return self.place(Cell.NOUGHT, row, col)

    # PUBLIC_INTERFACE
    def clear(self) -> "Board":
        """Reset every cell to EMPTY."""
        for row in self._cells:
            for col in range(BOARD_SIZE):
                row[col] = Cell.EMPTY
        self._occupied = 0
        return self

    def is_full(self) -> bool:
        return self._occupied == BOARD_SIZE * BOARD_SIZE

    def empty_cells(self) -> List[Coordinate]:
        """Empty coordinates in row-major order."""
        return [
            (row, col)
            for row in range(BOARD_SIZE)
            for col in range(BOARD_SIZE)
            if self._cells[row][col] is Cell.EMPTY
        ]

    def snapshot(self) -> Snapshot:
        """Immutable copy of the grid."""
        return tuple(tuple(row) for row in self._cells)

    def __repr__(self):
        rows = ["".join(cell.value or "." for cell in row) for row in self._cells]
        return f"Board({'/'.join(rows)})"
