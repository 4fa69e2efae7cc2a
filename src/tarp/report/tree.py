"""Hierarchical coverage tree.

A specialized radix tree keyed by slash-separated unit paths. Nodes keep a
map of path segment to child and a weak reference to their parent, which is
used only for upward aggregation and path reconstruction. The tree mirrors
the directory/package structure of the covered sources and carries
covered/total statement counts for every subtree.

Lifecycle:
    builder = TreeBuilder()
    builder.make("example.com/mod/pkg").is_package = True
    node = builder.make("example.com/mod/pkg/a.go")
    node.is_file = True
    builder.fold(node, covered=3, total=4)
    tree = builder.build()  # compresses single-child chains, read-only from here on
"""

from __future__ import annotations

import weakref
from collections.abc import Iterator
from dataclasses import dataclass, field

from tarp.core.errors import InternalError


def join_path(prefix: str, key: str) -> str:
    """Join two tree path fragments with '/' (an empty prefix adds nothing)."""
    return f"{prefix}/{key}" if prefix else key


def percent(covered: int, total: int) -> float:
    """Coverage percentage, 0.0 when nothing is measurable."""
    if total == 0:
        return 0.0
    return 100.0 * covered / total


def _package_path(path: str, key: str, node: TreeNode) -> str:
    # A single-file package is spliced into its file's node during
    # simplify(); the package itself is the directory part of that edge.
    if node.is_file and "/" in key:
        return path.rsplit("/", 1)[0]
    return path


@dataclass(eq=False, slots=True, weakref_slot=True)
class TreeNode:
    """A path segment in the coverage tree.

    ``is_package`` and ``is_file`` are independent flags; a node may carry
    both, or neither (a purely structural directory segment). ``body`` holds
    the annotated source markup and is only set on file nodes.
    """

    children: dict[str, TreeNode] = field(default_factory=dict)
    is_package: bool = False
    is_file: bool = False
    is_set_mode: bool = False
    covered: int = 0
    total: int = 0
    body: str | None = None
    _parent: weakref.ref[TreeNode] | None = field(default=None, repr=False)

    @property
    def parent(self) -> TreeNode | None:
        return self._parent() if self._parent is not None else None

    @parent.setter
    def parent(self, node: TreeNode | None) -> None:
        self._parent = weakref.ref(node) if node is not None else None

    def make(self, path: str) -> TreeNode:
        """Return the node for ``path``, creating missing segments.

        Segments are split on '/' verbatim: empty segments (leading,
        trailing or doubled slashes) become empty-string keys.
        """
        node = self
        for part in path.split("/"):
            child = node.children.get(part)
            if child is None:
                child = TreeNode()
                child.parent = node
                node.children[part] = child
            node = child
        return node

    def add_coverage(self, covered: int, total: int) -> None:
        """Add a (covered, total) delta to this node and every ancestor."""
        if covered < 0 or total < 0 or covered > total:
            raise ValueError(f"invalid coverage delta: covered={covered}, total={total}")
        node: TreeNode | None = self
        while node is not None:
            node.covered += covered
            node.total += total
            node = node.parent

    def simplify(self) -> None:
        """Collapse chains of single-child nodes into one edge, bottom-up."""
        for key in list(self.children):
            child = self.children[key]
            child.simplify()

            if len(child.children) == 1:
                ((grand_key, grand),) = child.children.items()
                del self.children[key]
                self.children[f"{key}/{grand_key}"] = grand
                grand.is_file = grand.is_file or child.is_file
                grand.is_package = grand.is_package or child.is_package
                grand.parent = self

    def keys(self) -> list[str]:
        """Child keys in lexicographic order."""
        return sorted(self.children)

    def path(self) -> str:
        """Full path of this node, rebuilt by walking up the parent links."""
        parts: list[str] = []
        node = self
        parent = node.parent
        while parent is not None:
            for key, child in parent.children.items():
                if child is node:
                    parts.append(key)
                    break
            node, parent = parent, parent.parent
        return "/".join(reversed(parts))

    def packages(self, prefix: str = "") -> list[str]:
        """Paths of every package node below this one, sorted."""
        found: list[str] = []
        for key in self.keys():
            child = self.children[key]
            child_path = join_path(prefix, key)
            if child.is_package:
                found.append(_package_path(child_path, key, child))
            found.extend(child.packages(child_path))
        return sorted(found)

    def files(self, package: str) -> list[str]:
        """Paths of the file nodes directly under ``package``, sorted.

        Works on the compressed tree: edges may span several segments, and a
        package whose only child was a single file is merged into that file's
        node.
        """
        node, rest = self, package
        while True:
            for key in node.keys():
                child = node.children[key]
                if key == rest:
                    # Multi-segment file keys belong to a collapsed sub-package.
                    return sorted(
                        join_path(package, k)
                        for k, c in child.children.items()
                        if c.is_file and "/" not in k
                    )
                if rest.startswith(key + "/"):
                    node, rest = child, rest[len(key) + 1 :]
                    break
                if key.startswith(rest + "/") and child.is_file:
                    tail = key[len(rest) + 1 :]
                    return [join_path(package, tail)] if "/" not in tail else []
            else:
                return []

    def walk(self, prefix: str = "") -> Iterator[tuple[str, TreeNode]]:
        """Yield (path, node) for every descendant, depth-first in key order."""
        for key in self.keys():
            child = self.children[key]
            child_path = join_path(prefix, key)
            yield child_path, child
            yield from child.walk(child_path)

    def coverage_percent(self) -> float:
        return percent(self.covered, self.total)

    def coverage_str(self) -> str:
        return f"{self.coverage_percent():.2f}"

    def cov_class(self) -> str:
        return f"cov{int(self.coverage_percent() / 10)}"

    def render_text(self) -> str:
        """Box-drawing rendering of the subtree, one line per node."""
        lines: list[str] = []
        self._render(lines, "", top=True)
        return "".join(lines)

    def _render(self, lines: list[str], indent: str, *, top: bool = False) -> None:
        keys = self.keys()
        for n, key in enumerate(keys):
            child = self.children[key]
            last = n == len(keys) - 1
            if top:
                branch, child_indent = "", ""
            else:
                branch = "└─" if last else "├─"
                child_indent = indent + ("  " if last else "│ ")
            flags = (" (P)" if child.is_package else "") + (" (F)" if child.is_file else "")
            lines.append(f"{indent}{branch}{key}{flags} ({child.coverage_str()}%)\n")
            child._render(lines, child_indent)


class TreeBuilder:
    """Build phase of the coverage tree: node creation and count folding."""

    def __init__(self) -> None:
        self._root = TreeNode()
        self._built = False

    def make(self, path: str) -> TreeNode:
        self._check_open()
        return self._root.make(path)

    def mark_package(self, package: str) -> TreeNode:
        node = self.make(package)
        node.is_package = True
        return node

    def mark_file(self, unit: str, *, set_mode: bool = False) -> TreeNode:
        node = self.make(unit)
        node.is_file = True
        node.is_set_mode = node.is_set_mode or set_mode
        return node

    def fold(self, node: TreeNode, covered: int, total: int) -> None:
        self._check_open()
        node.add_coverage(covered, total)

    def build(self) -> CoverageTree:
        """Compress the tree once and hand it over for reading."""
        self._check_open()
        self._root.simplify()
        self._built = True
        return CoverageTree(self._root)

    def _check_open(self) -> None:
        if self._built:
            raise InternalError.unexpected("coverage tree already built")


class CoverageTree:
    """Read-only handle on a finished, compressed coverage tree."""

    def __init__(self, root: TreeNode) -> None:
        self._root = root

    @property
    def root(self) -> TreeNode:
        return self._root

    @property
    def covered(self) -> int:
        return self._root.covered

    @property
    def total(self) -> int:
        return self._root.total

    def coverage_percent(self) -> float:
        return self._root.coverage_percent()

    def keys(self) -> list[str]:
        return self._root.keys()

    def packages(self) -> list[str]:
        return self._root.packages()

    def files(self, package: str) -> list[str]:
        return self._root.files(package)

    def walk(self) -> Iterator[tuple[str, TreeNode]]:
        return self._root.walk()

    def file_nodes(self) -> Iterator[tuple[str, TreeNode]]:
        return ((p, n) for p, n in self._root.walk() if n.is_file)

    def find(self, path: str) -> TreeNode | None:
        """Locate the node whose full path is ``path`` in the compressed tree."""
        node, rest = self._root, path
        while True:
            if rest in node.children:
                return node.children[rest]
            for key, child in node.children.items():
                if rest.startswith(key + "/"):
                    node, rest = child, rest[len(key) + 1 :]
                    break
            else:
                return None

    def render_text(self) -> str:
        return self._root.render_text()
