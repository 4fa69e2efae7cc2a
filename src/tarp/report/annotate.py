"""Source annotation: escaped source text with coverage spans.

The annotator walks a file's raw bytes together with its coverage
boundaries and emits HTML-escaped markup with a ``<span>`` around every
covered region. Boundaries are measured in bytes, so the walk is byte based
and the result is decoded only once at the end.
"""

from collections.abc import Sequence

from tarp.core.errors import AnnotationConsistencyError
from tarp.coverage.models import Boundary

_ESCAPES: dict[int, bytes] = {
    ord("&"): b"&amp;",
    ord("<"): b"&lt;",
    ord(">"): b"&gt;",
    ord('"'): b"&#34;",
    ord("'"): b"&#39;",
}

_CLOSE_TAG = b"</span>"


def escape_bytes(chunk: bytes, tab_width: int = 0) -> bytes:
    """HTML-escape a run of source bytes. Newlines are kept as-is."""
    out = bytearray()
    for byte in chunk:
        replacement = _ESCAPES.get(byte)
        if replacement is not None:
            out += replacement
        elif byte == 0x09 and tab_width:
            out += b" " * tab_width
        else:
            out.append(byte)
    return bytes(out)


def _open_tag(boundary: Boundary) -> bytes:
    return f'<span class="{boundary.css_class}" title="{boundary.count}">'.encode()


def annotate(src: bytes, boundaries: Sequence[Boundary], *, tab_width: int = 0) -> str:
    """Render ``src`` as escaped markup with a span per coverage region.

    ``boundaries`` must be sorted by offset, and every start must be closed
    by a later end. A list with fewer than two boundaries holds no region,
    so the source is emitted escaped and unannotated.

    Raises:
        AnnotationConsistencyError: If the boundary list goes backwards,
            closes a region that was never opened, or leaves one open.
    """
    if len(boundaries) < 2:
        return escape_bytes(src, tab_width).decode("utf-8", errors="replace")

    out = bytearray()
    open_regions: list[Boundary] = []
    cursor = 0

    for boundary in boundaries:
        offset = min(boundary.offset, len(src))
        if offset < cursor:
            raise AnnotationConsistencyError.malformed(
                "boundaries are not sorted by offset",
                offset=boundary.offset,
                cursor=cursor,
            )
        out += escape_bytes(src[cursor:offset], tab_width)
        cursor = offset

        if boundary.start:
            out += _open_tag(boundary)
            open_regions.append(boundary)
        else:
            if not open_regions:
                raise AnnotationConsistencyError.malformed(
                    "end boundary without an open region", offset=boundary.offset
                )
            open_regions.pop()
            out += _CLOSE_TAG

    if open_regions:
        raise AnnotationConsistencyError.malformed(
            f"{len(open_regions)} region(s) left open",
            offsets=[b.offset for b in open_regions],
        )

    out += escape_bytes(src[cursor:], tab_width)
    return out.decode("utf-8", errors="replace")
