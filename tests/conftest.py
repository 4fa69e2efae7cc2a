"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import sys
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local tarp package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from tarp.coverage.models import CoverageMode, Profile, ProfileBlock  # noqa: E402


def _block(
    start: tuple[int, int],
    end: tuple[int, int],
    num_stmt: int = 1,
    count: int = 0,
) -> ProfileBlock:
    return ProfileBlock(
        start_line=start[0],
        start_col=start[1],
        end_line=end[0],
        end_col=end[1],
        num_stmt=num_stmt,
        count=count,
    )


@pytest.fixture
def block():
    """Shorthand for a ProfileBlock from (line, col) pairs: block((1, 2), (3, 4), 2, 1)."""
    return _block


@pytest.fixture
def make_profile():
    """Factory for profiles: make_profile("pkg/a.go", "count", block(...), ...)."""

    def _make(unit: str, mode: str, *blocks: ProfileBlock) -> Profile:
        return Profile(file_name=unit, mode=CoverageMode(mode), blocks=list(blocks))

    return _make
