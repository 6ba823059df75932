from __future__ import annotations

from pathlib import Path

from reportlab.pdfgen import canvas

from .layout import Color


class PdfCanvasSink:
    """Document sink writing through a reportlab canvas.

    The file is only written by :meth:`finalize`.
    """

    def __init__(self, path: str | Path, *, title: str | None = None, author: str = "timeskwire") -> None:
        self.path = Path(path)
        self._title = title
        self._author = author
        self._canvas: canvas.Canvas | None = None

    def begin_page(self, width: float, height: float) -> None:
        if self._canvas is None:
            self._canvas = canvas.Canvas(str(self.path), pagesize=(width, height))
            self._canvas.setAuthor(self._author)
            if self._title:
                self._canvas.setTitle(self._title)
        else:
            self._canvas.setPageSize((width, height))

    def draw_text(self, x: float, y: float, text: str, font: str, size: float, align: str, color: Color) -> None:
        c = self._require_canvas()
        c.setFillColorRGB(*color)
        c.setFont(font, size)
        if align == "right":
            c.drawRightString(x, y, text)
        elif align == "center":
            c.drawCentredString(x, y, text)
        else:
            c.drawString(x, y, text)

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, width: float, color: Color) -> None:
        c = self._require_canvas()
        c.setStrokeColorRGB(*color)
        c.setLineWidth(width)
        c.line(x1, y1, x2, y2)

    def draw_rect(self, x: float, y: float, width: float, height: float, color: Color) -> None:
        c = self._require_canvas()
        c.setFillColorRGB(*color)
        c.rect(x, y, width, height, stroke=0, fill=1)

    def end_page(self) -> None:
        self._require_canvas().showPage()

    def finalize(self) -> None:
        self._require_canvas().save()

    def _require_canvas(self) -> canvas.Canvas:
        if self._canvas is None:
            raise RuntimeError("begin_page() must be called before drawing")
        return self._canvas
