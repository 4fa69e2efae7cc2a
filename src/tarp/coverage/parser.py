"""Go coverage profile parser.

Go test produces coverage profiles with format:
mode: set|count|atomic
<package>/<file>:<startline>.<startcol>,<endline>.<endcol> <numstmt> <count>

Example:
mode: set
github.com/user/pkg/main.go:10.2,12.16 3 1
github.com/user/pkg/main.go:15.2,20.16 5 0

- mode: set (0/1), count (hit count), atomic (thread-safe count)
- numstmt: number of statements in block
- count: execution count (0 = not covered)
"""

import re
from pathlib import Path

from tarp.core.errors import BlockMismatchError, InputParseError
from tarp.core.logging import get_logger
from tarp.coverage.models import (
    MAX_COUNT,
    CoverageMode,
    Profile,
    ProfileBlock,
    saturating_add,
)

log = get_logger(__name__)

_MODE_PREFIX = "mode:"
_BLOCK_RE = re.compile(r"^(?P<file>.+):(\d+)\.(\d+),(\d+)\.(\d+) (\d+) (\d+)$")


class GocovParser:
    """Parser for Go coverage profiles."""

    def parse(self, path: Path) -> list[Profile]:
        """Parse a Go coverage profile file into per-unit profiles."""
        try:
            content = path.read_text()
        except (OSError, UnicodeDecodeError) as e:
            raise InputParseError.unreadable(str(path), str(e)) from e

        profiles = self.parse_text(content, source=str(path))
        log.debug("profile_parsed", path=str(path), units=len(profiles))
        return profiles

    def parse_text(self, content: str, *, source: str = "<string>") -> list[Profile]:
        """Parse profile text. ``source`` names the input in error messages.

        Returns profiles sorted by unit name, each with blocks sorted by
        start position. Repeated blocks inside one input are folded with the
        mode's merge rule.
        """
        mode: CoverageMode | None = None
        files: dict[str, Profile] = {}

        for line_no, raw in enumerate(content.splitlines(), start=1):
            line = raw.strip()
            if not line:
                continue

            if line.startswith(_MODE_PREFIX):
                line_mode = _parse_mode(line, source, line_no)
                if mode is None:
                    mode = line_mode
                elif line_mode is not mode:
                    raise InputParseError.bad_line(
                        source, line_no, f"mode changes from {mode} to {line_mode}"
                    )
                continue

            if mode is None:
                raise InputParseError.bad_line(source, line_no, "missing mode line")

            match = _BLOCK_RE.match(line)
            if match is None:
                raise InputParseError.bad_line(
                    source, line_no, f"line doesn't match expected format: {line!r}"
                )

            file_name = match.group("file")
            sl, sc, el, ec, num_stmt, count = (int(g) for g in match.groups()[1:])
            profile = files.get(file_name)
            if profile is None:
                profile = files[file_name] = Profile(file_name=file_name, mode=mode)
            profile.blocks.append(
                ProfileBlock(
                    start_line=sl,
                    start_col=sc,
                    end_line=el,
                    end_col=ec,
                    num_stmt=num_stmt,
                    count=min(count, MAX_COUNT),
                )
            )

        if mode is None:
            raise InputParseError.bad_line(source, 1, "empty coverage profile")

        profiles = [files[name] for name in sorted(files)]
        for profile in profiles:
            _fold_duplicates(profile)
        return profiles


def _parse_mode(line: str, source: str, line_no: int) -> CoverageMode:
    value = line[len(_MODE_PREFIX) :].strip()
    try:
        return CoverageMode(value)
    except ValueError:
        raise InputParseError.bad_line(source, line_no, f"unknown mode {value!r}") from None


def _fold_duplicates(profile: Profile) -> None:
    profile.blocks.sort(key=lambda b: (b.start_line, b.start_col))
    folded: list[ProfileBlock] = []
    for block in profile.blocks:
        if folded and folded[-1].start == block.start and folded[-1].end == block.end:
            last = folded[-1]
            if last.num_stmt != block.num_stmt:
                raise BlockMismatchError.for_block(
                    profile.file_name,
                    block.span(),
                    f"statement count differs ({last.num_stmt} vs {block.num_stmt})",
                )
            if profile.mode.is_set:
                last.count = 1 if (last.count or block.count) else 0
            else:
                last.count = saturating_add(last.count, block.count)
            continue
        folded.append(block)
    profile.blocks = folded


def parse_profiles(path: Path) -> list[Profile]:
    """Parse a single Go coverage profile file."""
    return GocovParser().parse(path)
