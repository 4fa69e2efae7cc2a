"""Coverage profile merging.

Profiles for the same unit (e.g., from separate test binaries or parallel
shards) are combined block by block:

- count/atomic: block.count = block.count + other.count (saturating at MAX_COUNT)
- set: block.count = 1 if either count is non-zero, else 0

Both inputs must have been instrumented identically: every incoming block
needs an existing block with the same start and end position and statement
count, and the counting modes must be equal.
"""

from collections.abc import Iterable
from pathlib import Path

from tarp.core.errors import BlockMismatchError, ModeConflictError
from tarp.core.logging import get_logger
from tarp.coverage.models import Profile, ProfileBlock, saturating_add
from tarp.coverage.parser import parse_profiles

log = get_logger(__name__)


def _copy_profile(profile: Profile) -> Profile:
    blocks = [
        ProfileBlock(
            start_line=b.start_line,
            start_col=b.start_col,
            end_line=b.end_line,
            end_col=b.end_col,
            num_stmt=b.num_stmt,
            count=b.count,
        )
        for b in profile.blocks
    ]
    return Profile(file_name=profile.file_name, mode=profile.mode, blocks=blocks)


def merge_profile(into: Profile, other: Profile) -> None:
    """Merge ``other`` into ``into`` in place.

    Raises:
        ModeConflictError: If the profiles use different counting modes.
        BlockMismatchError: If a block of ``other`` has no identical
            counterpart in ``into``.
    """
    if into.mode is not other.mode:
        raise ModeConflictError.for_unit(into.file_name, str(into.mode), str(other.mode))

    by_position = {(b.start, b.end): b for b in into.blocks}
    for block in other.blocks:
        target = by_position.get((block.start, block.end))
        if target is None:
            raise BlockMismatchError.for_block(
                into.file_name, block.span(), "has no counterpart in earlier profiles"
            )
        if target.num_stmt != block.num_stmt:
            raise BlockMismatchError.for_block(
                into.file_name,
                block.span(),
                f"statement count differs ({target.num_stmt} vs {block.num_stmt})",
            )
        if into.mode.is_set:
            target.count = 1 if (target.count or block.count) else 0
        else:
            target.count = saturating_add(target.count, block.count)


def add_profile(profiles: list[Profile], profile: Profile) -> list[Profile]:
    """Fold one profile into an accumulating list of merged profiles.

    Lookup is by exact unit name. An unseen unit is appended (as a copy, so
    inputs are never mutated); a known one is merged in place. The list keeps
    first-occurrence order.
    """
    for existing in profiles:
        if existing.file_name == profile.file_name:
            merge_profile(existing, profile)
            log.debug("profile_merged", unit=profile.file_name, blocks=len(profile.blocks))
            return profiles
    profiles.append(_copy_profile(profile))
    return profiles


def merge_profiles(profiles: Iterable[Profile]) -> list[Profile]:
    """Merge profiles left to right into one profile per unit."""
    merged: list[Profile] = []
    for profile in profiles:
        add_profile(merged, profile)
    return merged


def open_and_merge(paths: Iterable[Path]) -> list[Profile]:
    """Parse every coverage file and merge all of their profiles.

    Raises:
        InputParseError: If any file is unreadable or malformed.
        ModeConflictError, BlockMismatchError: If profiles cannot be combined.
    """
    merged: list[Profile] = []
    inputs = 0
    for path in paths:
        inputs += 1
        for profile in parse_profiles(path):
            add_profile(merged, profile)
    log.info("profiles_merged", inputs=inputs, units=len(merged))
    return merged
