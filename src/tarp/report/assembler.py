"""Report assembly: profiles in, finished coverage tree out.

For every merged profile the assembler resolves the owning package and the
backing file, folds per-function statement counts into the tree and renders
the annotated source body. Any failure aborts the whole run; a report with
silently missing files is worse than none.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from tarp.core.errors import ReadError
from tarp.core.logging import get_logger
from tarp.coverage.merge import open_and_merge
from tarp.coverage.models import Profile
from tarp.report.annotate import annotate
from tarp.report.tree import CoverageTree, TreeBuilder

if TYPE_CHECKING:
    from tarp.resolve.functions import FunctionExtractor
    from tarp.resolve.packages import Resolver

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RenderContext:
    """Everything presentation needs: the finished tree and the inputs it came from."""

    tree: CoverageTree
    inputs: tuple[str, ...] = ()

    @property
    def packages(self) -> list[str]:
        return self.tree.packages()

    def files(self, package: str) -> list[str]:
        return self.tree.files(package)


class ReportAssembler:
    """Builds a RenderContext from merged coverage profiles."""

    def __init__(
        self,
        resolver: Resolver,
        extractor: FunctionExtractor,
        *,
        tab_width: int = 8,
    ) -> None:
        self._resolver = resolver
        self._extractor = extractor
        self._tab_width = tab_width

    def assemble(
        self, profiles: Sequence[Profile], *, inputs: Iterable[str] = ()
    ) -> RenderContext:
        """Fold every profile into a coverage tree and compress it.

        Raises:
            ResolutionError: If a unit cannot be mapped to a package or file.
            ReadError: If a source file cannot be read.
            AnnotationConsistencyError: If boundary production is inconsistent.
        """
        builder = TreeBuilder()
        units = [p.file_name for p in profiles]
        self._resolver.prepare(units)

        for package in sorted({self._resolver.resolve_unit(u) for u in units}):
            builder.mark_package(package)

        for profile in profiles:
            self._add_profile(builder, profile)

        tree = builder.build()
        log.info(
            "report_assembled",
            files=len(profiles),
            covered=tree.covered,
            total=tree.total,
        )
        return RenderContext(tree=tree, inputs=tuple(inputs))

    def assemble_files(self, paths: Sequence[Path]) -> RenderContext:
        """Parse, merge and assemble coverage profile files."""
        profiles = open_and_merge(paths)
        return self.assemble(profiles, inputs=[str(p) for p in paths])

    def _add_profile(self, builder: TreeBuilder, profile: Profile) -> None:
        file = self._resolver.find_file(profile.file_name)
        node = builder.mark_file(profile.file_name, set_mode=profile.mode.is_set)

        for func in self._extractor.extract_functions(file):
            covered, total = func.coverage(profile)
            builder.fold(node, covered, total)

        try:
            src = file.read_bytes()
        except OSError as e:
            raise ReadError.unreadable(profile.file_name, str(e)) from e

        node.body = annotate(src, profile.boundaries(src), tab_width=self._tab_width)
        log.debug(
            "file_annotated",
            unit=profile.file_name,
            path=str(file),
            covered=node.covered,
            total=node.total,
        )
