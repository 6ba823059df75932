"""Page layout for reports.

Turns a :class:`~timeskwire.models.ReportModel` into pages of positioned
drawing items. All measuring, truncation and pagination happens here; the
renderer only replays the items. Coordinates are PDF points with the origin in
the bottom-left corner.
"""

from __future__ import annotations

import colorsys
from dataclasses import dataclass
from typing import Sequence

from reportlab.lib.pagesizes import A4, letter
from reportlab.pdfbase.pdfmetrics import stringWidth

from .models import GroupEntry, ReportModel
from .timestamps import format_seconds

Color = tuple[float, float, float]

BLACK: Color = (0.0, 0.0, 0.0)
MUTED: Color = (0.4, 0.4, 0.4)
TOTAL_RED: Color = (150 / 255, 0.0, 0.0)

ELLIPSIS = "..."
NO_ACTIVITY_TEXT = "No tracked activity"
LABEL_HEADING = "Group"
SHARE_HEADING = "Share"
DURATION_HEADING = "Duration"


@dataclass(frozen=True, slots=True)
class PageOptions:
    width: float = A4[0]
    height: float = A4[1]
    margin: float = 36.0
    header_height: float = 72.0
    footer_height: float = 64.0
    row_height: float = 16.0
    font: str = "Helvetica"
    bold_font: str = "Helvetica-Bold"
    font_size: float = 9.0
    title_size: float = 14.0
    column_gap: float = 12.0
    swatch_size: float = 6.0
    entry_indent: float = 10.0
    show_entries: bool = True

    def __post_init__(self) -> None:
        if self.rows_per_page < 2:
            raise ValueError("page options leave room for fewer than two rows per page")

    @property
    def content_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def body_top(self) -> float:
        return self.height - self.margin - self.header_height

    @property
    def body_bottom(self) -> float:
        return self.margin + self.footer_height

    @property
    def rows_per_page(self) -> int:
        return int((self.body_top - self.body_bottom) // self.row_height)


PAGE_PRESETS: dict[str, PageOptions] = {
    "a4": PageOptions(),
    "letter": PageOptions(width=letter[0], height=letter[1]),
    # Small single-sheet format with tight margins and 5pt text.
    "compact": PageOptions(
        width=180.0,
        height=240.0,
        margin=10.0,
        header_height=40.0,
        footer_height=30.0,
        row_height=6.0,
        font_size=5.0,
        title_size=10.0,
        column_gap=6.0,
        swatch_size=3.0,
        entry_indent=5.0,
    ),
}


@dataclass(frozen=True, slots=True)
class TextItem:
    x: float
    y: float
    text: str
    font: str
    size: float
    align: str = "left"
    color: Color = BLACK


@dataclass(frozen=True, slots=True)
class LineItem:
    x1: float
    y1: float
    x2: float
    y2: float
    width: float = 0.5
    color: Color = BLACK


@dataclass(frozen=True, slots=True)
class RectItem:
    x: float
    y: float
    width: float
    height: float
    color: Color = BLACK


Item = TextItem | LineItem | RectItem


@dataclass(frozen=True, slots=True)
class Block:
    items: tuple[Item, ...] = ()


@dataclass(frozen=True, slots=True)
class RowBlock:
    kind: str
    y: float
    items: tuple[Item, ...]


@dataclass(frozen=True, slots=True)
class Page:
    number: int
    header: Block
    rows: tuple[RowBlock, ...]
    footer: Block


@dataclass(frozen=True, slots=True)
class ColumnWidths:
    label: float
    share: float
    duration: float


@dataclass(frozen=True, slots=True)
class PageLayout:
    width: float
    height: float
    columns: ColumnWidths
    pages: tuple[Page, ...]

    @property
    def page_count(self) -> int:
        return len(self.pages)


@dataclass(frozen=True, slots=True)
class Row:
    """One table row before it is positioned on a page."""

    kind: str
    label: str
    share: str = ""
    duration: str = ""
    color: Color | None = None


def group_colors(count: int) -> list[Color]:
    """Evenly spaced hues, one per group."""
    return [colorsys.hsv_to_rgb(index / count, 1.0, 0.75) for index in range(count)]


def paginate(sections: Sequence[Sequence[Row]], capacity: int) -> list[list[Row]]:
    """Distribute row sections over pages of ``capacity`` rows.

    The first row of every section is its header; a header never ends a page
    while the section still has rows to follow it.
    """
    pages: list[list[Row]] = [[]]
    for section in sections:
        header, *rest = section
        current = pages[-1]

        needed = 2 if rest else 1
        if current and capacity - len(current) < needed:
            current = []
            pages.append(current)
        current.append(header)

        for row in rest:
            if len(current) >= capacity:
                current = []
                pages.append(current)
            current.append(row)
    return pages


def fit_text(text: str, font: str, size: float, max_width: float) -> str:
    if stringWidth(text, font, size) <= max_width:
        return text
    while text and stringWidth(text + ELLIPSIS, font, size) > max_width:
        text = text[:-1]
    return text + ELLIPSIS


def entry_label(entry: GroupEntry) -> str:
    interval = entry.interval
    start = interval.start
    if interval.end is None:
        end_text = "now"
    elif interval.end.date() == start.date():
        end_text = f"{interval.end:%H:%M}"
    else:
        end_text = f"{interval.end:%Y-%m-%d %H:%M}"

    text = f"{start:%Y-%m-%d %H:%M} - {end_text}"
    if interval.annotation:
        text = f"{text}  {interval.annotation}"
    return text


def build_sections(model: ReportModel, show_entries: bool) -> list[list[Row]]:
    if not model.groups:
        return [[Row(kind="empty", label=NO_ACTIVITY_TEXT)]]

    sections = []
    for group, color in zip(model.groups, group_colors(len(model.groups))):
        section = [
            Row(
                kind="group",
                label=group.label,
                share=f"{model.share(group):.2f}%",
                duration=format_seconds(group.total_seconds),
                color=color,
            )
        ]
        if show_entries:
            section.extend(
                Row(kind="entry", label=entry_label(entry), duration=format_seconds(entry.seconds))
                for entry in group.entries
            )
        sections.append(section)
    return sections


def layout_report(model: ReportModel, options: PageOptions) -> PageLayout:
    """Lay out the whole report. Pure: identical inputs give identical pages."""
    sections = build_sections(model, options.show_entries)
    rows = [row for section in sections for row in section]
    columns = _column_widths(rows, model, options)

    pages = paginate(sections, options.rows_per_page)
    page_count = len(pages)

    laid_out = []
    for index, page_rows in enumerate(pages):
        number = index + 1
        laid_out.append(
            Page(
                number=number,
                header=_header_block(model, options, columns),
                rows=tuple(_row_block(row, slot, options, columns) for slot, row in enumerate(page_rows)),
                footer=_footer_block(model, options, number, page_count),
            )
        )

    return PageLayout(width=options.width, height=options.height, columns=columns, pages=tuple(laid_out))


def _row_font(row: Row, options: PageOptions) -> str:
    return options.bold_font if row.kind == "group" else options.font


def _label_indent(row: Row, options: PageOptions) -> float:
    if row.kind == "group":
        return options.swatch_size + options.swatch_size / 2
    if row.kind == "entry":
        return options.swatch_size + options.swatch_size / 2 + options.entry_indent
    return 0.0


def _column_widths(rows: list[Row], model: ReportModel, options: PageOptions) -> ColumnWidths:
    size = options.font_size

    def widest(texts, font):
        return max((stringWidth(text, font, size) for text in texts if text), default=0.0)

    share = max(
        widest([row.share for row in rows], options.bold_font),
        stringWidth(SHARE_HEADING, options.bold_font, size),
    )
    duration = max(
        widest([row.duration for row in rows], options.bold_font),
        widest([format_seconds(model.grand_total_seconds)], options.bold_font),
        stringWidth(DURATION_HEADING, options.bold_font, size),
    )
    label = max(
        max(
            (stringWidth(row.label, _row_font(row, options), size) + _label_indent(row, options) for row in rows),
            default=0.0,
        ),
        stringWidth(LABEL_HEADING, options.bold_font, size),
    )

    # The label column absorbs any shortage; its texts get truncated.
    available = options.content_width - share - duration - 2 * options.column_gap
    return ColumnWidths(label=min(label, max(available, 0.0)), share=share, duration=duration)


def _share_right(options: PageOptions, columns: ColumnWidths) -> float:
    return options.width - options.margin - columns.duration - options.column_gap


def _row_block(row: Row, slot: int, options: PageOptions, columns: ColumnWidths) -> RowBlock:
    bottom = options.body_top - (slot + 1) * options.row_height
    baseline = bottom + (options.row_height - options.font_size) / 2
    font = _row_font(row, options)
    indent = _label_indent(row, options)

    items: list[Item] = []
    if row.color is not None:
        items.append(RectItem(options.margin, baseline, options.swatch_size, options.swatch_size, row.color))

    label = fit_text(row.label, font, options.font_size, columns.label - indent)
    items.append(TextItem(options.margin + indent, baseline, label, font, options.font_size))

    if row.share:
        items.append(
            TextItem(_share_right(options, columns), baseline, row.share, font, options.font_size, align="right")
        )
    if row.duration:
        items.append(
            TextItem(options.width - options.margin, baseline, row.duration, font, options.font_size, align="right")
        )

    return RowBlock(kind=row.kind, y=baseline, items=tuple(items))


def _header_block(model: ReportModel, options: PageOptions, columns: ColumnWidths) -> Block:
    top = options.height - options.margin
    title_y = top - options.title_size
    title = fit_text(model.title, options.bold_font, options.title_size, options.content_width)
    title_width = stringWidth(title, options.bold_font, options.title_size) + 8.0
    rule_y = title_y - options.title_size / 2
    subtitle_y = rule_y - options.font_size * 1.8
    headings_y = options.body_top + options.font_size / 2
    size = options.font_size

    return Block(
        items=(
            TextItem(options.width / 2, title_y, title, options.bold_font, options.title_size, align="center"),
            LineItem((options.width - title_width) / 2, rule_y, (options.width + title_width) / 2, rule_y),
            TextItem(options.margin, subtitle_y, model.subtitle, options.bold_font, size),
            TextItem(options.margin, headings_y, LABEL_HEADING, options.bold_font, size, color=MUTED),
            TextItem(
                _share_right(options, columns), headings_y, SHARE_HEADING, options.bold_font, size,
                align="right", color=MUTED,
            ),
            TextItem(
                options.width - options.margin, headings_y, DURATION_HEADING, options.bold_font, size,
                align="right", color=MUTED,
            ),
            LineItem(
                options.margin, options.body_top + size / 5, options.width - options.margin,
                options.body_top + size / 5, width=0.25, color=MUTED,
            ),
        )
    )


def _footer_block(model: ReportModel, options: PageOptions, number: int, page_count: int) -> Block:
    small = options.font_size * 0.8
    items: list[Item] = [
        TextItem(
            options.margin, options.margin, f"Generated {model.generated_at:%Y-%m-%d %H:%M} UTC",
            options.font, small, color=MUTED,
        ),
        TextItem(
            options.width - options.margin, options.margin, f"Page {number} of {page_count}",
            options.font, small, align="right", color=MUTED,
        ),
    ]

    if number == page_count:
        items.extend(_totals_items(model, options))
    return Block(items=tuple(items))


def _totals_items(model: ReportModel, options: PageOptions) -> list[Item]:
    size = options.font_size
    rule_y = options.body_bottom - size / 5
    total_y = options.body_bottom - size * 1.5
    items: list[Item] = [
        LineItem(options.margin, rule_y, options.width - options.margin, rule_y, width=0.25, color=MUTED),
        TextItem(options.margin, total_y, "TOTAL:", options.bold_font, size, color=TOTAL_RED),
        TextItem(
            options.width - options.margin, total_y, format_seconds(model.grand_total_seconds),
            options.bold_font, size, align="right", color=TOTAL_RED,
        ),
    ]

    if model.grand_total_seconds <= 0:
        return items

    # Stacked bar of every group's share, in report order.
    bar_y = total_y - size * 1.5 - size
    x = options.margin
    for group, color in zip(model.groups, group_colors(len(model.groups))):
        width = options.content_width * group.total_seconds / model.grand_total_seconds
        if width > 0:
            items.append(RectItem(x, bar_y, width, size, color))
        x += width
    return items
