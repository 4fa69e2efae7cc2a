"""Single-file HTML rendering of a finished coverage tree.

The document has a navigation tree on the left (one entry per tree node,
with its coverage percentage) and one section per source file holding the
annotated listing. Everything is inline so the report can be opened
straight from disk.
"""

from __future__ import annotations

import html
from pathlib import Path

from tarp.core.logging import get_logger
from tarp.report.assembler import RenderContext
from tarp.report.tree import TreeNode, join_path

log = get_logger(__name__)

_NOT_COVERED = (192, 0, 0)
_LOW = (128, 128, 128)
_STEP = (-12, 12, 3)


def colors() -> str:
    """CSS rules for the cov0..cov10 heat classes.

    cov0 is never-executed code; cov1..cov10 run from gray to green with
    increasing execution counts.
    """
    rules = [".cov0 {{ color: rgb({}, {}, {}) }}".format(*_NOT_COVERED)]
    for tier in range(1, 11):
        r, g, b = (base + step * (tier - 1) for base, step in zip(_LOW, _STEP, strict=True))
        rules.append(f".cov{tier} {{ color: rgb({r}, {g}, {b}) }}")
    return "\n".join(rules)


_STYLE = """
* { box-sizing: border-box; }
body {
  margin: 0;
  background: #000;
  color: rgb(80, 80, 80);
  font-family: Menlo, Monaco, Consolas, "Courier New", monospace;
  font-size: 13px;
}
header {
  padding: 8px 16px;
  background: #111;
  border-bottom: 1px solid #333;
  color: #ccc;
}
header h1 { display: inline; font-size: 16px; margin-right: 16px; }
header .inputs { color: #777; font-size: 11px; }
#layout { display: flex; height: calc(100vh - 48px); }
nav {
  width: 28%;
  min-width: 220px;
  overflow: auto;
  border-right: 1px solid #333;
  padding: 8px;
}
nav ul { list-style: none; margin: 0; padding-left: 14px; }
nav > ul { padding-left: 0; }
nav li { white-space: nowrap; }
nav a { text-decoration: none; color: inherit; }
nav a:hover { text-decoration: underline; }
nav .flag { color: #555; font-size: 10px; }
main { flex: 1; overflow: auto; padding: 0 16px; }
section.file { display: none; }
section.file:target { display: block; }
section.file h2 { font-size: 14px; color: #ccc; }
.legend span { margin-right: 8px; }
.listing { display: flex; }
.listing pre { margin: 0; line-height: 1.4; }
.gutter { color: #444; text-align: right; padding-right: 12px; user-select: none; }
"""


def _legend(set_mode: bool) -> str:
    if set_mode:
        return '<span class="cov0">not covered</span><span class="cov8">covered</span>'
    heat = "".join(f'<span class="cov{tier}">*</span>' for tier in range(1, 11))
    return f'<span class="cov0">no coverage</span><span>low</span>{heat}<span>high</span>'


def _anchor(path: str) -> str:
    # "/" maps to "-", other punctuation to "_<hex>_".
    return "file-" + "".join(
        c if c.isalnum() or c == "." else "-" if c == "/" else f"_{ord(c):x}_" for c in path
    )


def _nav(node: TreeNode, prefix: str) -> str:
    items: list[str] = []
    for key in node.keys():
        child = node.children[key]
        path = join_path(prefix, key)
        label = html.escape(key)
        if child.is_file:
            label = f'<a href="#{_anchor(path)}">{label}</a>'
        flags = ("P" if child.is_package else "") + ("F" if child.is_file else "")
        flag_html = f' <span class="flag">{flags}</span>' if flags else ""
        sub = _nav(child, path) if child.children else ""
        items.append(
            f'<li><span class="{child.cov_class()}">{label}</span>{flag_html} '
            f"({child.coverage_str()}%){sub}</li>"
        )
    return "<ul>" + "".join(items) + "</ul>"


def _file_section(path: str, node: TreeNode) -> str:
    body = node.body or ""
    gutter = "\n".join(str(n) for n in range(1, body.count("\n") + 2))
    return (
        f'<section class="file" id="{_anchor(path)}">'
        f'<h2>{html.escape(path)} <span class="{node.cov_class()}">'
        f"{node.coverage_str()}%</span> "
        f'<span class="legend">{_legend(node.is_set_mode)}</span></h2>'
        f'<div class="listing"><pre class="gutter">{gutter}</pre>'
        f'<pre class="source">{body}</pre></div>'
        "</section>"
    )


def render_html(context: RenderContext, title: str = "Coverage report") -> str:
    """Render the full report document."""
    tree = context.tree
    sections = "\n".join(_file_section(path, node) for path, node in tree.file_nodes())
    inputs = ", ".join(html.escape(i) for i in context.inputs)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{html.escape(title)}</title>
<style>
{_STYLE}
{colors()}
</style>
</head>
<body>
<header>
<h1>{html.escape(title)}</h1>
<span class="{tree.root.cov_class()}">{tree.root.coverage_str()}% of statements</span>
<div class="inputs">{inputs}</div>
</header>
<div id="layout">
<nav>{_nav(tree.root, "")}</nav>
<main>
{sections}
</main>
</div>
</body>
</html>
"""


def write_report(context: RenderContext, output: Path, title: str = "Coverage report") -> Path:
    """Render the report and write it to ``output`` (UTF-8)."""
    document = render_html(context, title)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(document, encoding="utf-8")
    log.info("report_written", path=str(output), bytes=len(document))
    return output
