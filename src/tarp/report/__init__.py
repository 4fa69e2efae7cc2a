"""Coverage tree, source annotation, report assembly and HTML rendering.

Usage:
    from tarp.report import ReportAssembler, write_report

    assembler = ReportAssembler(resolver, extractor)
    context = assembler.assemble_files([Path("cover.out")])
    write_report(context, Path("coverage.html"))
"""

from tarp.report.annotate import annotate, escape_bytes
from tarp.report.assembler import RenderContext, ReportAssembler
from tarp.report.html import colors, render_html, write_report
from tarp.report.tree import CoverageTree, TreeBuilder, TreeNode, percent

__all__ = [
    # Tree
    "CoverageTree",
    "TreeBuilder",
    "TreeNode",
    "percent",
    # Annotation
    "annotate",
    "escape_bytes",
    # Assembly
    "RenderContext",
    "ReportAssembler",
    # Presentation
    "colors",
    "render_html",
    "write_report",
]
