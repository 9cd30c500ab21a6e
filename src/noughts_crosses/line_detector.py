"""
Line-completion detection for the last move played.
"""

from typing import Optional, Tuple

from .board import BOARD_SIZE, Board, Cell, Coordinate, validate_indices, validate_marker

WinningLine = Tuple[Coordinate, Coordinate, Coordinate]

MAIN_DIAGONAL: WinningLine = ((0, 0), (1, 1), (2, 2))
ANTI_DIAGONAL: WinningLine = ((0, 2), (1, 1), (2, 0))


def _complete(board: Board, marker: Cell, line: WinningLine) -> bool:
    return all(board.value_at(row, col) is marker for row, col in line)


# PUBLIC_INTERFACE
def detect(board: Board, marker: Cell, last_row: int, last_col: int) -> Optional[WinningLine]:
    """
    Return the line through (last_row, last_col) that marker has completed, or None.

    Only the lines through the last-played cell are examined. When one move
    completes several lines the first match wins: row, then column, then the
    main diagonal, then the anti-diagonal.
    """
    validate_indices(last_row, last_col)
    marker = validate_marker(marker)

    candidates = [
        tuple((last_row, col) for col in range(BOARD_SIZE)),
        tuple((row, last_col) for row in range(BOARD_SIZE)),
    ]
    if last_row == last_col:
        candidates.append(MAIN_DIAGONAL)
    if last_row + last_col == BOARD_SIZE - 1:
        candidates.append(ANTI_DIAGONAL)

    for line in candidates:
        if _complete(board, marker, line):
            return line
    return None
