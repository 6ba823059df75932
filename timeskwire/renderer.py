from __future__ import annotations

import logging
from typing import Protocol

from .errors import RenderError, SinkFailureError
from .layout import Color, Item, LineItem, Page, PageLayout, RectItem, TextItem

logger = logging.getLogger(__name__)


class DocumentSink(Protocol):
    """Low-level drawing surface a laid-out report is replayed onto."""

    def begin_page(self, width: float, height: float) -> None: ...

    def draw_text(self, x: float, y: float, text: str, font: str, size: float, align: str, color: Color) -> None: ...

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, width: float, color: Color) -> None: ...

    def draw_rect(self, x: float, y: float, width: float, height: float, color: Color) -> None: ...

    def end_page(self) -> None: ...

    def finalize(self) -> None: ...


def render(layout: PageLayout, sink: DocumentSink) -> None:
    """Replay every page of ``layout`` onto ``sink`` and finalize it.

    Any failure raised by the sink is re-raised as :class:`SinkFailureError`;
    nothing is retried.
    """
    for page in layout.pages:
        logger.debug("Rendering page %d of %d", page.number, layout.page_count)
        _guarded(sink, _render_page, layout, page, sink)

    _guarded(sink, sink.finalize)
    logger.info("Rendered %d page(s)", layout.page_count)


def _guarded(sink: DocumentSink, func, *args) -> None:
    try:
        func(*args)
    except RenderError:
        raise
    except Exception as exc:
        raise SinkFailureError(f"{type(sink).__name__} failed: {exc}") from exc


def _render_page(layout: PageLayout, page: Page, sink: DocumentSink) -> None:
    sink.begin_page(layout.width, layout.height)
    for item in page.header.items:
        _emit(sink, item)
    for row in page.rows:
        for item in row.items:
            _emit(sink, item)
    for item in page.footer.items:
        _emit(sink, item)
    sink.end_page()


def _emit(sink: DocumentSink, item: Item) -> None:
    if isinstance(item, TextItem):
        sink.draw_text(item.x, item.y, item.text, item.font, item.size, item.align, item.color)
    elif isinstance(item, LineItem):
        sink.draw_line(item.x1, item.y1, item.x2, item.y2, item.width, item.color)
    elif isinstance(item, RectItem):
        sink.draw_rect(item.x, item.y, item.width, item.height, item.color)
    else:
        raise RenderError(f"Cannot render item of type {type(item).__name__}")
