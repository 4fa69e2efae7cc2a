"""Function extents of Go source files.

Coverage is aggregated per function: only statements inside a function
declaration count towards a file's totals. Function boundaries come from a
tree-sitter parse of the source.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import tree_sitter
import tree_sitter_go

from tarp.core.errors import ReadError
from tarp.core.logging import get_logger
from tarp.coverage.models import Profile

log = get_logger(__name__)

_FUNC_NODE_TYPES = frozenset({"function_declaration", "method_declaration"})


@dataclass(frozen=True, slots=True)
class FuncExtent:
    """Source extent of one function.

    Lines and columns are 1-based, columns count bytes, and the end
    position is exclusive (one past the closing brace).
    """

    name: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def coverage(self, profile: Profile) -> tuple[int, int]:
        """Covered and total statements of this function in ``profile``.

        Blocks are sorted, so counting stops at the first block that starts
        at or after the end of the function.
        """
        covered = 0
        total = 0
        for b in profile.blocks:
            if b.start_line > self.end_line or (
                b.start_line == self.end_line and b.start_col >= self.end_col
            ):
                break
            if b.end_line < self.start_line or (
                b.end_line == self.start_line and b.end_col <= self.start_col
            ):
                continue
            total += b.num_stmt
            if b.count > 0:
                covered += b.num_stmt
        return covered, total


class FunctionExtractor(Protocol):
    """Enumerates the functions of a source file."""

    def extract_functions(self, path: Path) -> list[FuncExtent]: ...


class TreeSitterFunctionExtractor:
    """FunctionExtractor for Go, backed by the tree-sitter Go grammar."""

    def __init__(self) -> None:
        self._parser = tree_sitter.Parser(tree_sitter.Language(tree_sitter_go.language()))

    def extract_functions(self, path: Path) -> list[FuncExtent]:
        try:
            content = path.read_bytes()
        except OSError as e:
            raise ReadError.unreadable(str(path), str(e)) from e
        funcs = self.extract_from_source(content)
        log.debug("functions_extracted", path=str(path), functions=len(funcs))
        return funcs

    def extract_from_source(self, content: bytes) -> list[FuncExtent]:
        """Top-level functions and methods that have a body, in source order."""
        tree = self._parser.parse(content)
        funcs: list[FuncExtent] = []
        for node in tree.root_node.named_children:
            if node.type not in _FUNC_NODE_TYPES:
                continue
            if node.child_by_field_name("body") is None:
                continue
            funcs.append(
                FuncExtent(
                    name=_func_name(node),
                    start_line=node.start_point[0] + 1,
                    start_col=node.start_point[1] + 1,
                    end_line=node.end_point[0] + 1,
                    end_col=node.end_point[1] + 1,
                )
            )
        return funcs


def _text(node: Any) -> str:
    return node.text.decode("utf-8", errors="replace") if node is not None else ""


def _func_name(node: Any) -> str:
    name = _text(node.child_by_field_name("name"))
    if node.type != "method_declaration":
        return name

    receiver = node.child_by_field_name("receiver")
    recv_type = ""
    if receiver is not None:
        for param in receiver.named_children:
            if param.type == "parameter_declaration":
                recv_type = _text(param.child_by_field_name("type"))
                break
    recv_type = recv_type.lstrip("*").split("[", 1)[0]
    return f"{recv_type}.{name}" if recv_type else name
