"""
PDF Reader
===========
Inspects rendered pass documents with pikepdf.

Used by the CLI to report on a finished conversion and by the test suite to
check page structure without rasterizing:
- page count and document information
- text strings drawn on each page (``Tj`` / ``TJ`` operands) and their origins
- where each image is placed
- number of image XObjects on each page

Example::

    from pkpass_pdf import RenderedPassReader

    with RenderedPassReader("ticket.pdf") as reader:
        print(reader.page_count, reader.page_texts(1))
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, BinaryIO

import pikepdf

_TEXT_OPERATORS = {"Tj", "'", '"', "TJ"}


class RenderedPassReader:
    """Context-manager-based reader for PDFs produced by the layout engine."""

    def __init__(self, source: str | Path | BinaryIO) -> None:
        self._source = source
        self._pdf = pikepdf.open(str(source) if isinstance(source, Path) else source)

    def __enter__(self) -> "RenderedPassReader":
        return self

    def __exit__(self, *_: Any) -> None:
        self._pdf.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def page_count(self) -> int:
        return len(self._pdf.pages)

    def page_size(self, page: int = 1) -> tuple[float, float]:
        """(width, height) of the 1-based ``page`` from its MediaBox."""
        box = self._page(page).MediaBox
        return (float(box[2]) - float(box[0]), float(box[3]) - float(box[1]))

    def page_texts(self, page: int = 1) -> list[str]:
        """Every text string drawn on the 1-based ``page``, in drawing order."""
        return [text for text, _, _ in self.text_positions(page)]

    def text_positions(self, page: int = 1) -> list[tuple[str, float, float]]:
        """``(text, x, y)`` for every string drawn on the 1-based ``page``.

        The position is the origin set by the most recent ``Tm``, which is how
        every string on a rendered pass is placed.
        """
        placed: list[tuple[str, float, float]] = []
        x = y = 0.0
        for instruction in pikepdf.parse_content_stream(self._page(page)):
            operator = str(instruction.operator)
            if operator == "Tm":
                x, y = float(instruction.operands[4]), float(instruction.operands[5])
            elif operator in _TEXT_OPERATORS:
                text = self._text_operand(instruction.operands[-1])
                if text is not None:
                    placed.append((text, x, y))
        return placed

    def image_placements(self, page: int = 1) -> list[tuple[float, float, float, float]]:
        """``(x, y, width, height)`` of every XObject drawn on the 1-based ``page``."""
        placements: list[tuple[float, float, float, float]] = []
        matrix: list[float] = [1.0, 0.0, 0.0, 1.0, 0.0, 0.0]
        for instruction in pikepdf.parse_content_stream(self._page(page)):
            operator = str(instruction.operator)
            if operator == "cm":
                matrix = [float(v) for v in instruction.operands]
            elif operator == "Do":
                a, _, _, d, e, f = matrix
                placements.append((e, f, a, d))
        return placements

    def all_texts(self) -> list[str]:
        return [text for page in range(1, self.page_count + 1) for text in self.page_texts(page)]

    def contains_text(self, needle: str, page: int | None = None) -> bool:
        texts = self.page_texts(page) if page is not None else self.all_texts()
        return any(needle in text for text in texts)

    def fill_colors(self, page: int = 1) -> list[tuple[float, float, float]]:
        """RGB operands of every ``rg`` operator on the 1-based ``page``."""
        return [
            tuple(round(float(v), 3) for v in instruction.operands)
            for instruction in pikepdf.parse_content_stream(self._page(page), "rg")
        ]

    def image_count(self, page: int = 1) -> int:
        """Number of image XObjects referenced by the 1-based ``page``."""
        return len(self._page(page).images)

    def metadata(self) -> dict[str, str]:
        """Document information dictionary with the leading ``/`` stripped."""
        return {str(key).lstrip("/"): str(value) for key, value in self._pdf.docinfo.items()}

    def summary(self) -> dict[str, Any]:
        """Return a summary of the document."""
        return {
            "source": str(self._source) if isinstance(self._source, (str, Path)) else "<stream>",
            "page_count": self.page_count,
            "page_size": self.page_size(1),
            "images_per_page": [self.image_count(n) for n in range(1, self.page_count + 1)],
            "metadata": self.metadata(),
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _page(self, page: int) -> pikepdf.Page:
        if page < 1 or page > self.page_count:
            raise IndexError(f"page {page} out of range (1-{self.page_count})")
        obj = self._pdf.pages[page - 1]
        return obj if isinstance(obj, pikepdf.Page) else pikepdf.Page(obj)

    @staticmethod
    def _decode(value: pikepdf.String) -> str:
        # Standard fonts are drawn with WinAnsiEncoding.
        return bytes(value).decode("cp1252", errors="replace")

    @classmethod
    def _text_operand(cls, operand: Any) -> str | None:
        if isinstance(operand, pikepdf.Array):
            return "".join(cls._decode(item) for item in operand if isinstance(item, pikepdf.String))
        if isinstance(operand, pikepdf.String):
            return cls._decode(operand)
        return None
