"""Go coverage profile data model.

A profile is the per-unit record written by ``go test -coverprofile``: one
source unit (an import-path-qualified file name), a counting mode and the
statement blocks of that unit in source order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import StrEnum

# Counters are signed 64-bit in the producing toolchain.
MAX_COUNT = 2**63 - 1

# Normalized heat for hits in a profile whose maximum count is 1.
SET_MODE_NORM = 0.8


class CoverageMode(StrEnum):
    """Counting mode of a profile."""

    SET = "set"
    COUNT = "count"
    ATOMIC = "atomic"

    @property
    def is_set(self) -> bool:
        return self is CoverageMode.SET


def saturating_add(a: int, b: int) -> int:
    """Add two execution counts, clamping at MAX_COUNT."""
    return min(a + b, MAX_COUNT)


@dataclass(slots=True)
class ProfileBlock:
    """A contiguous statement range with its execution count.

    Lines and columns are 1-based; columns count bytes.
    """

    start_line: int
    start_col: int
    end_line: int
    end_col: int
    num_stmt: int
    count: int

    @property
    def start(self) -> tuple[int, int]:
        return (self.start_line, self.start_col)

    @property
    def end(self) -> tuple[int, int]:
        return (self.end_line, self.end_col)

    def span(self) -> str:
        """Position in profile notation, e.g. ``10.2,12.16``."""
        return f"{self.start_line}.{self.start_col},{self.end_line}.{self.end_col}"


@dataclass(frozen=True, slots=True)
class Boundary:
    """Start or end of a covered region inside a file's byte stream."""

    offset: int
    start: bool
    count: int = 0
    norm: float = 0.0
    index: int = 0

    @property
    def tier(self) -> int:
        """Heat tier: 0 for never executed, 1..10 by normalized count."""
        if self.count == 0:
            return 0
        return int(math.floor(self.norm * 9)) + 1

    @property
    def css_class(self) -> str:
        return f"cov{self.tier}"


@dataclass(slots=True)
class Profile:
    """Coverage record for a single source unit."""

    file_name: str
    mode: CoverageMode
    blocks: list[ProfileBlock] = field(default_factory=list)

    @property
    def total_statements(self) -> int:
        return sum(b.num_stmt for b in self.blocks)

    @property
    def covered_statements(self) -> int:
        return sum(b.num_stmt for b in self.blocks if b.count > 0)

    def boundaries(self, src: bytes) -> list[Boundary]:
        """Compute region boundaries of this profile over the unit's source.

        Every block contributes a start boundary at its start position and an
        end boundary at its end position. The result is ordered by offset,
        ties broken by production order.
        """
        max_count = max((b.count for b in self.blocks), default=0)
        divisor = math.log(max_count) if max_count > 1 else 0.0

        line_starts = _line_starts(src)
        boundaries: list[Boundary] = []

        def boundary(offset: int, start: bool, count: int) -> Boundary:
            norm = 0.0
            if start and count > 0:
                norm = SET_MODE_NORM if max_count <= 1 else math.log(count) / divisor
            return Boundary(
                offset=offset, start=start, count=count, norm=norm, index=len(boundaries)
            )

        for block in self.blocks:
            start = _offset(line_starts, len(src), block.start_line, block.start_col)
            end = _offset(line_starts, len(src), block.end_line, block.end_col)
            boundaries.append(boundary(start, True, block.count))
            boundaries.append(boundary(max(start, end), False, 0))

        boundaries.sort(key=lambda b: (b.offset, b.index))
        return boundaries


def _line_starts(src: bytes) -> list[int]:
    starts = [0]
    pos = src.find(b"\n")
    while pos != -1:
        starts.append(pos + 1)
        pos = src.find(b"\n", pos + 1)
    return starts


def _offset(line_starts: list[int], size: int, line: int, col: int) -> int:
    if line < 1:
        return 0
    if line > len(line_starts):
        return size
    base = line_starts[line - 1]
    limit = line_starts[line] if line < len(line_starts) else size
    return min(base + max(col, 1) - 1, limit)
