"""Cell-width aware text helpers for the dashboard.

Everything here is pure. Styled text is a list of ``(text, attr)`` segments
where ``attr`` is an opaque curses attribute; widths are always measured
in terminal cells, never in characters.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable

Segment = tuple[str, int]
Line = list[Segment]

ELLIPSIS = "..."


def char_width(char: str) -> int:
    """Terminal cells occupied by a single character."""
    code = ord(char)
    if code < 0x20 or 0x7F <= code < 0xA0:
        return 0
    if unicodedata.combining(char) or unicodedata.category(char) in ("Mn", "Me", "Cf"):
        return 0
    if unicodedata.east_asian_width(char) in ("W", "F"):
        return 2
    return 1


def measure_width(text: str) -> int:
    return sum(char_width(c) for c in text)


def _cut(text: str, max_cells: int) -> str:
    """Longest prefix of text that fits in max_cells (no marker)."""
    used = 0
    for idx, char in enumerate(text):
        w = char_width(char)
        if used + w > max_cells:
            return text[:idx]
        used += w
    return text


def truncate(text: str, max_cells: int) -> str:
    """Fit text into max_cells, marking the cut with an ellipsis when room allows."""
    if max_cells <= 0:
        return ""
    if measure_width(text) <= max_cells:
        return text
    if max_cells <= 3:
        return _cut(text, max_cells)
    return _cut(text, max_cells - len(ELLIPSIS)) + ELLIPSIS


def pad_left(text: str, width: int) -> str:
    w = measure_width(text)
    if w >= width:
        return text
    return " " * (width - w) + text


def pad_right(text: str, width: int) -> str:
    w = measure_width(text)
    if w >= width:
        return text
    return text + " " * (width - w)


def highlight_match(text: str, query: str, base: int, match: int) -> Line:
    """Style the first case-insensitive occurrence of query with the match attr.

    The search runs on text.lower(), the same folding the filter uses, and is
    mapped back to the original characters; a lowercase form may be longer
    than its source character (İ lowers to two code points).
    """
    if not query:
        return [(text, base)]
    needle = query.lower()
    idx = text.lower().find(needle)
    if idx < 0:
        return [(text, base)]
    origin: list[int] = []
    for pos, char in enumerate(text):
        origin.extend([pos] * len(char.lower()))
    start = origin[idx]
    end = origin[idx + len(needle) - 1] + 1
    segments = [(text[:start], base), (text[start:end], match), (text[end:], base)]
    return [seg for seg in segments if seg[0]]


# ESC-introduced sequences (a trailing one cut off by end of input included)
# plus C0 control characters other than tab and newline.
CONTROL_SEQUENCE_RE = re.compile(
    r'\x1b\[[^\x40-\x7e]*[\x40-\x7e]?|'                    # CSI
    r'\x1b\](?:[^\x07\x1b]|\x1b(?!\\))*(?:\x07|\x1b\\)?|'  # OSC, ended by BEL or ST
    r'\x1b[()].?|'                                         # Character set selection
    r'\x1b.?|'                                             # Other two-byte escapes
    r'[\x00-\x08\x0b-\x1f]',
    re.DOTALL,
)


def strip_control_sequences(text: str) -> str:
    """Remove terminal escape sequences and control characters except newline and tab."""
    return CONTROL_SEQUENCE_RE.sub("", text)


def scroll_line(line: str, offset: int, width: int) -> str:
    """Skip offset cells from the left, then cut and pad to exactly width cells.

    A wide glyph straddling either edge is dropped rather than split.
    """
    skipped = 0
    idx = 0
    while idx < len(line) and skipped < offset:
        skipped += char_width(line[idx])
        idx += 1
    return pad_right(_cut(line[idx:], max(0, width)), width)


def scroll_preview(raw: str, offset: int, width: int) -> list[str]:
    return [scroll_line(line, offset, width) for line in raw.split("\n")]


def preview_max_width(raw: str) -> int:
    return max((measure_width(line) for line in raw.split("\n")), default=0)


def clamp_lines(lines: list, max_lines: int) -> list:
    if max_lines <= 0:
        return []
    return lines[:max_lines]


def line_width(line: Iterable[Segment]) -> int:
    return sum(measure_width(text) for text, _ in line)


def plain_text(line: Iterable[Segment]) -> str:
    return "".join(text for text, _ in line)


def fit_line(line: Line, width: int, fill_attr: int = 0) -> Line:
    """Cut a styled line to width cells and pad it with spaces to exactly width."""
    fitted: Line = []
    used = 0
    for text, attr in line:
        if used >= width:
            break
        w = measure_width(text)
        if used + w > width:
            text = _cut(text, width - used)
            w = measure_width(text)
        if text:
            fitted.append((text, attr))
        used += w
    if used < width:
        fitted.append((" " * (width - used), fill_attr))
    return fitted


def build_top_border(
    left: str,
    right: str,
    outer_width: int,
    title_attr: int,
    right_attr: int,
    border_attr: int,
    min_right: int = 4,
) -> Line:
    """Render ``╭─<left><fill><right>╮`` exactly outer_width cells wide.

    The right segment is cut first and dropped entirely when fewer than
    min_right cells would remain for it; the left is cut only after that.
    """
    max_vw = max(1, outer_width - 4)
    left_w = measure_width(left)
    right_w = measure_width(right)

    if left_w + right_w > max_vw:
        max_right = max_vw - left_w - 1
        if max_right < min_right:
            right, right_w = "", 0
        else:
            right = truncate(right, max_right)
            right_w = measure_width(right)

    if left_w + right_w > max_vw:
        left = truncate(left, max_vw - right_w - 1)
        left_w = measure_width(left)

    fill = max(0, outer_width - 3 - left_w - right_w)
    line: Line = [("╭─", border_attr)]
    if left:
        line.append((left, title_attr))
    if right:
        line += [("─" * fill, border_attr), (right, right_attr), ("╮", border_attr)]
    else:
        line.append(("─" * fill + "╮", border_attr))
    return line


def build_bottom_border(right: str, outer_width: int, right_attr: int, border_attr: int) -> Line:
    fill = max(0, outer_width - 2 - measure_width(right))
    line: Line = [("╰" + "─" * fill, border_attr)]
    if right:
        line.append((right, right_attr))
    line.append(("╯", border_attr))
    return line


def wrap_help_parts(parts: list[Line], max_width: int) -> list[Line]:
    """Greedily pack help items into lines of at most max_width cells.

    Each line starts with one space, items are joined by two spaces, and a
    line always takes at least one item even if that item alone overflows.
    """
    if max_width <= 0:
        joined: Line = [(" ", 0)]
        for idx, part in enumerate(parts):
            if idx:
                joined.append(("  ", 0))
            joined += part
        return [joined]

    lines: list[Line] = []
    current: Line = [(" ", 0)]
    current_w = 1
    for idx, part in enumerate(parts):
        part_w = line_width(part)
        sep_w = 0 if idx == 0 else 2
        if current_w + sep_w + part_w > max_width and current_w > 1:
            lines.append(current)
            current = [(" ", 0)] + list(part)
            current_w = 1 + part_w
        else:
            if sep_w:
                current.append(("  ", 0))
            current += part
            current_w += sep_w + part_w
    lines.append(current)
    return lines
