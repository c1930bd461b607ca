"""Grid rules: which cells are unsafe and how revealed cells are tracked.

The grid is GRID_SIZE x GRID_SIZE. A cell (x, y) maps to bit ``y * GRID_SIZE + x`` of the
revealed mask. Whether a cell is unsafe depends only on the seed, the coordinates and the
threshold passed in by the caller; the caller is expected to pass the threshold in effect
at the time of the call, so a governance change applies to cells revealed afterwards.
"""

import hashlib
from typing import Iterator

from mines_server.domain.commit_reveal import normalize_bytes32, to_bytes
from mines_server.domain.game_rules import BASIS_POINTS

GRID_SIZE = 10
CELL_COUNT = GRID_SIZE * GRID_SIZE


def is_valid_coordinate(x: int, y: int) -> bool:
    return 0 <= x < GRID_SIZE and 0 <= y < GRID_SIZE


def cell_index(x: int, y: int) -> int:
    """Bit index of (x, y) in the revealed mask."""
    if not is_valid_coordinate(x, y):
        raise ValueError(f"coordinate out of grid: ({x}, {y})")
    return y * GRID_SIZE + x


def cell_coordinate(index: int) -> tuple[int, int]:
    """Inverse of cell_index."""
    if index < 0 or index >= CELL_COUNT:
        raise ValueError(f"cell index out of grid: {index}")
    return index % GRID_SIZE, index // GRID_SIZE


def cell_value(seed: str, x: int, y: int) -> int:
    """sha256(seed || x || y) reduced to [0, BASIS_POINTS)."""
    if not is_valid_coordinate(x, y):
        raise ValueError(f"coordinate out of grid: ({x}, {y})")
    digest = hashlib.sha256(to_bytes(normalize_bytes32(seed)) + bytes([x, y])).digest()
    return int.from_bytes(digest, "big") % BASIS_POINTS


def is_unsafe(seed: str, x: int, y: int, threshold: int) -> bool:
    """True if (x, y) holds a mine for ``seed`` at mine probability ``threshold`` (bp)."""
    return cell_value(seed, x, y) < threshold


def is_revealed(mask: int, x: int, y: int) -> bool:
    return bool(mask >> cell_index(x, y) & 1)


def with_revealed(mask: int, x: int, y: int) -> int:
    """Return ``mask`` with (x, y) set. Setting an already set cell is an error."""
    if is_revealed(mask, x, y):
        raise ValueError(f"cell already revealed: ({x}, {y})")
    return mask | (1 << cell_index(x, y))


def iter_revealed_cells(mask: int) -> Iterator[tuple[int, int]]:
    """Yield revealed cells in bit order."""
    for index in range(CELL_COUNT):
        if mask >> index & 1:
            yield cell_coordinate(index)


def revealed_count(mask: int) -> int:
    return bin(mask).count("1")
