"""Tests for report assembly."""

from __future__ import annotations

import posixpath
from collections.abc import Iterable
from pathlib import Path

import pytest

from tarp.core.errors import ReadError, ResolutionError
from tarp.report.assembler import ReportAssembler
from tarp.resolve.functions import FuncExtent

SOURCE = b"package a\n\nfunc A() {\n\tx := 1\n}\n\nvar y = 2\n"


class FakeResolver:
    """Maps every unit onto a flat directory by basename."""

    def __init__(self, root: Path, missing: Iterable[str] = ()) -> None:
        self.root = root
        self.missing = set(missing)
        self.prepared: list[str] = []

    def prepare(self, units: Iterable[str]) -> None:
        self.prepared.extend(units)

    def resolve_unit(self, unit: str) -> str:
        if unit in self.missing:
            raise ResolutionError.unresolved(unit, "unknown")
        return posixpath.dirname(unit)

    def find_file(self, unit: str) -> Path:
        if unit in self.missing:
            raise ResolutionError.unresolved(unit, "unknown")
        return self.root / posixpath.basename(unit)


class FakeExtractor:
    def __init__(self, funcs: list[FuncExtent]) -> None:
        self.funcs = funcs

    def extract_functions(self, path: Path) -> list[FuncExtent]:
        return list(self.funcs)


FUNC_A = FuncExtent(name="A", start_line=3, start_col=1, end_line=5, end_col=2)


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    (tmp_path / "a.go").write_bytes(SOURCE)
    return tmp_path


def _write_profile(path: Path, body: str) -> Path:
    path.write_text(body)
    return path


class TestAssembleFiles:
    """End-to-end assembly from profile files."""

    def test_given_two_runs_when_assembled_then_counts_merged(self, workdir: Path) -> None:
        # Given
        line = "example.com/mod/a.go:3.10,5.2 1 1\n"
        one = _write_profile(workdir / "one.out", "mode: count\n" + line)
        two = _write_profile(workdir / "two.out", "mode: count\n" + line)
        assembler = ReportAssembler(FakeResolver(workdir), FakeExtractor([FUNC_A]))

        # When
        context = assembler.assemble_files([one, two])

        # Then
        tree = context.tree
        assert (tree.covered, tree.total) == (1, 1)
        assert tree.coverage_percent() == 100.0
        assert context.packages == ["example.com/mod"]
        assert context.files("example.com/mod") == ["example.com/mod/a.go"]
        assert context.inputs == (str(one), str(two))

        node = tree.find("example.com/mod/a.go")
        assert node is not None
        assert '<span class="cov10" title="2">' in (node.body or "")

    def test_tabs_expanded_in_body(self, workdir: Path) -> None:
        profile = _write_profile(
            workdir / "c.out", "mode: set\nexample.com/mod/a.go:3.10,5.2 1 1\n"
        )
        assembler = ReportAssembler(FakeResolver(workdir), FakeExtractor([FUNC_A]), tab_width=4)

        context = assembler.assemble_files([profile])

        body = context.tree.find("example.com/mod/a.go").body
        assert "    x := 1" in body
        assert "\t" not in body


class TestAssemble:
    """Tests for assemble() on parsed profiles."""

    def test_statements_outside_functions_do_not_count(
        self, workdir: Path, make_profile, block
    ) -> None:
        profile = make_profile(
            "example.com/mod/a.go",
            "set",
            block((3, 10), (5, 2), 1, 0),
            block((7, 1), (7, 10), 1, 1),
        )
        assembler = ReportAssembler(FakeResolver(workdir), FakeExtractor([FUNC_A]))

        context = assembler.assemble([profile])

        assert (context.tree.covered, context.tree.total) == (0, 1)

    def test_file_without_functions_contributes_nothing(
        self, workdir: Path, make_profile, block
    ) -> None:
        profile = make_profile("example.com/mod/a.go", "set", block((7, 1), (7, 10), 1, 1))
        assembler = ReportAssembler(FakeResolver(workdir), FakeExtractor([]))

        context = assembler.assemble([profile])

        assert context.tree.total == 0
        assert context.tree.find("example.com/mod/a.go").body is not None

    def test_resolver_prepared_with_all_units(self, workdir: Path, make_profile) -> None:
        (workdir / "b.go").write_bytes(b"package a\n")
        resolver = FakeResolver(workdir)
        profiles = [
            make_profile("example.com/mod/a.go", "set"),
            make_profile("example.com/mod/sub/b.go", "set"),
        ]

        context = ReportAssembler(resolver, FakeExtractor([])).assemble(profiles)

        assert resolver.prepared == ["example.com/mod/a.go", "example.com/mod/sub/b.go"]
        assert context.packages == ["example.com/mod", "example.com/mod/sub"]

    def test_set_mode_recorded_on_file_node(self, workdir: Path, make_profile, block) -> None:
        profile = make_profile("example.com/mod/a.go", "set", block((3, 10), (5, 2), 1, 1))
        context = ReportAssembler(FakeResolver(workdir), FakeExtractor([FUNC_A])).assemble(
            [profile]
        )
        assert context.tree.find("example.com/mod/a.go").is_set_mode


class TestAssembleErrors:
    """Any per-file failure aborts the run."""

    def test_given_unresolvable_unit_when_assembled_then_raises(
        self, workdir: Path, make_profile
    ) -> None:
        # Given
        resolver = FakeResolver(workdir, missing=["example.com/other/x.go"])
        profiles = [
            make_profile("example.com/mod/a.go", "set"),
            make_profile("example.com/other/x.go", "set"),
        ]

        # When / Then
        with pytest.raises(ResolutionError) as exc_info:
            ReportAssembler(resolver, FakeExtractor([])).assemble(profiles)
        assert exc_info.value.details["unit"] == "example.com/other/x.go"

    def test_missing_source_file_raises_read_error(self, tmp_path: Path, make_profile) -> None:
        profile = make_profile("example.com/mod/gone.go", "set")
        assembler = ReportAssembler(FakeResolver(tmp_path), FakeExtractor([]))

        with pytest.raises(ReadError):
            assembler.assemble([profile])
