"""Frame rendering: list and preview panes, activity log, help bar.

render() turns the model into exactly model.height styled lines (fewer only
for the loading and error screens); the runtime just paints them.
"""

from __future__ import annotations

from ..models import UiState
from .model import Model
from .text_layout import (
    Line,
    build_bottom_border,
    build_top_border,
    clamp_lines,
    fit_line,
    highlight_match,
    pad_left,
    pad_right,
    scroll_preview,
    truncate,
    wrap_help_parts,
)
from .theme import Theme
from .view_cache import client_label, memory_label, uptime_label

MIN_NAME_WIDTH = 10


def render(model: Model, theme: Theme) -> list[Line]:
    if model.error is not None:
        lines: list[Line] = [[]]
        for idx, text in enumerate(model.error.splitlines() or [""]):
            prefix = "  Error: " if idx == 0 else "  "
            lines.append([(prefix + text, theme.confirm)])
        lines += [[], [("  Is zmx installed and in your PATH?", theme.normal)]]
        return lines

    if model.width == 0:
        return [[("  Loading...", theme.normal)]]

    visible = model.visible_sessions()
    help_lines = render_help(model, theme)
    ch = model.main_content_height(len(help_lines))

    # List pane
    low = model.list_outer_width()
    if len(visible) != len(model.sessions):
        list_left = f" zmx ({len(visible)}/{len(model.sessions)}) "
    else:
        list_left = f" zmx sessions ({len(visible)}) "
    arrow = "↑" if model.sort_asc else "↓"
    list_right = f" {arrow} {model.sort_mode.label} "
    sel_label = f" {len(model.selected)} sel " if model.selected else ""
    list_pane = _box(
        build_top_border(list_left, list_right, low, theme.title, theme.sort, theme.border),
        render_list(model, theme, ch),
        ch,
        low,
        build_bottom_border(sel_label, low, theme.selected, theme.border),
        theme,
    )

    # Preview pane
    preview_w = model.preview_outer_width()
    preview_rows = clamp_lines(
        scroll_preview(model.preview, model.preview_scroll_x, preview_w - 2), ch
    )
    current = model.current_session()
    preview_left, preview_right = " Preview ", ""
    if current is not None:
        preview_left = f" {current.name} "
        preview_right = f" 📂 {current.display_dir()} "
    preview_pane = _box(
        build_top_border(preview_left, preview_right, preview_w, theme.title, theme.directory, theme.border),
        [[(row, theme.normal)] for row in preview_rows],
        ch,
        preview_w,
        build_bottom_border("", preview_w, 0, theme.border),
        theme,
    )

    body = [left + right for left, right in zip(list_pane, preview_pane)]

    # Log pane
    log_title = " Killing... " if model.state == UiState.KILLING else " Activity Log "
    log_pane = _box(
        build_top_border(log_title, "", model.width, theme.title, theme.log_dim, theme.border),
        render_log(model, theme),
        model.log_height,
        model.width,
        build_bottom_border("", model.width, 0, theme.border),
        theme,
    )

    frame = clamp_lines(body + log_pane + help_lines, model.height)
    return [fit_line(line, model.width) for line in frame]


def _box(top: Line, content: list[Line], rows: int, outer_width: int, bottom: Line, theme: Theme) -> list[Line]:
    inner = max(0, outer_width - 2)
    lines = [top]
    for idx in range(rows):
        row = content[idx] if idx < len(content) else []
        lines.append([("│", theme.border)] + fit_line(row, inner) + [("│", theme.border)])
    lines.append(bottom)
    return lines


def render_list(model: Model, theme: Theme, max_rows: int) -> list[Line]:
    visible = model.visible_sessions()
    if not visible:
        if model.filter_text:
            return [[("  No matches. Esc to clear filter.", theme.normal)]]
        return [[("  No sessions found. Press r to refresh.", theme.normal)]]

    metrics = model.visible_metrics()
    lw = model.list_inner_width()
    name_width = lw - 6 - metrics.pid - metrics.memory - metrics.uptime - metrics.client
    name_width = max(name_width, MIN_NAME_WIDTH)

    offset = model.list_offset
    if model.cursor >= offset + max_rows:
        offset = model.cursor - max_rows + 1

    rows = []
    for idx in range(offset, min(len(visible), offset + max_rows)):
        s = visible[idx]
        is_cursor = idx == model.cursor
        is_selected = s.name in model.selected

        if is_cursor and is_selected:
            indicator = ("▸●", theme.selected)
        elif is_cursor:
            indicator = ("▸ ", theme.selected)
        elif is_selected:
            indicator = (" ●", theme.selected)
        else:
            indicator = ("  ", theme.normal)

        client_attr = theme.active_client if s.clients > 0 else theme.inactive_client
        name = pad_right(truncate(s.name, name_width), name_width)
        style = theme.selected if is_cursor or is_selected else theme.normal
        if model.filter_text:
            name_segments = highlight_match(name, model.filter_text, style, theme.filter_match)
        else:
            name_segments = [(name, style)]

        rows.append(
            [indicator]
            + name_segments
            + [
                (" ", 0),
                (pad_left(s.pid, metrics.pid), theme.pid),
                (" ", 0),
                (pad_left(memory_label(s), metrics.memory), theme.memory),
                (" ", 0),
                (pad_left(uptime_label(s), metrics.uptime), theme.uptime),
                (" ", 0),
                (pad_left(client_label(s), metrics.client), client_attr),
            ]
        )
    return rows


def render_log(model: Model, theme: Theme) -> list[Line]:
    if not model.log_lines:
        return [[("  No activity yet.", theme.log_dim)]]
    start = max(0, model.log_offset)
    end = min(len(model.log_lines), start + model.log_height)
    return [
        [(entry.timestamp, theme.log_dim), (" ", 0), (entry.text, getattr(theme, entry.style, 0))]
        for entry in model.log_lines[start:end]
    ]


def _hint(key: str, label: str, theme: Theme) -> Line:
    return [(key, theme.help_key), (f" {label}", theme.help)]


def render_help(model: Model, theme: Theme) -> list[Line]:
    if model.state == UiState.KILLING:
        return [[(" [] scroll log  ", theme.help), ("q", theme.help_key), (" quit", theme.help)]]

    if model.state == UiState.FILTER:
        return [[
            (" /", theme.help),
            (model.filter_text, theme.help_key),
            ("█  Enter accept | Esc clear", theme.help),
        ]]

    if model.state == UiState.CONFIRM_KILL:
        targets = model.kill_targets()
        if len(targets) == 1:
            return [[(f" Kill {targets[0]}? y/n ", theme.confirm)]]
        return [[(f" Kill {len(targets)} sessions? y/n ", theme.confirm)]]

    parts = [
        _hint("←→", "scroll", theme),
        _hint("↑↓/jk/gg/G", "nav", theme),
        _hint("space", "sel", theme),
        _hint("^a", "all", theme),
        _hint("enter", "attach", theme),
        _hint("K", "kill", theme),
        _hint("c", "copy cmd", theme),
        _hint("s", "sort", theme),
    ]
    if model.filter_text:
        parts.append(_hint("esc", "clear", theme))
    else:
        parts.append(_hint("/", "filter", theme))
    parts += [_hint("[]", "log", theme), _hint("q", "quit", theme)]
    if model.status:
        parts.append([(model.status, theme.status)])
    return wrap_help_parts(parts, model.width)
