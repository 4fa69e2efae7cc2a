"""Go coverage profile parsing and merging.

Usage:
    from tarp.coverage import open_and_merge

    # Parse and merge any number of profiles into one profile per unit
    profiles = open_and_merge([Path("unit.out"), Path("integration.out")])

    # Byte-offset region boundaries for a unit's source
    boundaries = profiles[0].boundaries(Path("main.go").read_bytes())
"""

from tarp.coverage.merge import (
    add_profile,
    merge_profile,
    merge_profiles,
    open_and_merge,
)
from tarp.coverage.models import (
    MAX_COUNT,
    Boundary,
    CoverageMode,
    Profile,
    ProfileBlock,
)
from tarp.coverage.parser import GocovParser, parse_profiles

__all__ = [
    # Models
    "MAX_COUNT",
    "Boundary",
    "CoverageMode",
    "Profile",
    "ProfileBlock",
    # Parser
    "GocovParser",
    "parse_profiles",
    # Merge
    "add_profile",
    "merge_profile",
    "merge_profiles",
    "open_and_merge",
]
