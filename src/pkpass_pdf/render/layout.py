"""
Pass Layout Engine
===================
Lays a :class:`~pkpass_pdf.models.pkpass.ParsedPass` out on a fixed-size
page and writes the resulting PDF to a sink.

The page is drawn top to bottom in a single pass. The only layout state is
the vertical cursor ``y``: it starts at ``page_height - margin`` and every
drawing step takes the current value and returns the new, lower one.

Drawing order:
    background, header row (logo / logo text / organization, thumbnail),
    header fields, strip image, description, style label, separator,
    primary, secondary and auxiliary fields, barcode block, back fields
    (in place or on a second page), footer.

Only sink write failures raise. Bad colours, undecodable images, unencodable
barcodes and overflowing text are logged and degraded.

Example::

    from pkpass_pdf import parse_pkpass_file
    from pkpass_pdf import render_pass

    render_pass(parse_pkpass_file("ticket.pkpass"), "ticket.pdf")
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Sequence

from reportlab.graphics import renderPDF
from reportlab.lib.colors import Color
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from ..config import DEFAULT_LAYOUT, LayoutConfig
from ..errors import BarcodeEncodingError
from ..models.pkpass import ParsedPass, PassField
from ..pdf.writer import PassDocumentWriter
from .barcode import encode_matrix_barcode
from .colors import is_valid_color, parse_color
from .formatting import (
    fit_text,
    format_field_value,
    format_footer_date,
    format_style_label,
    wrap_text,
)

logger = logging.getLogger(__name__)


class PassRenderer:
    """
    Renders parsed passes to PDF.

    Holds only configuration; every call builds its own canvas, so one
    renderer can be reused for any number of passes.
    """

    def __init__(self, config: LayoutConfig = DEFAULT_LAYOUT) -> None:
        self.config = config

    def render(self, pass_: ParsedPass, sink: str | Path | BinaryIO) -> None:
        """
        Render ``pass_`` and write the document to ``sink``.

        Parameters
        ----------
        pass_:
            The normalized pass.
        sink:
            Destination file path or writable binary stream.

        Raises SinkWriteError if the document cannot be written.
        """
        document = self.render_bytes(pass_)
        with PassDocumentWriter(document) as writer:
            writer.set_metadata(
                title=pass_.description,
                author=pass_.organization_name,
                subject=format_style_label(pass_.style, pass_.transit_type),
            )
            writer.save(sink)

    def render_bytes(self, pass_: ParsedPass) -> bytes:
        """Lay the pass out and return the raw PDF bytes."""
        buffer = io.BytesIO()
        pdf_canvas = canvas.Canvas(buffer, pagesize=self.config.page_size, invariant=1)
        page_count = _PassLayout(pdf_canvas, pass_, self.config).draw()
        pdf_canvas.save()
        logger.debug("Rendered %s pass on %d page(s)", pass_.style.value, page_count)
        return buffer.getvalue()


def render_pass(
    pass_: ParsedPass,
    sink: str | Path | BinaryIO,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> None:
    """Render ``pass_`` to ``sink`` with the given layout configuration."""
    PassRenderer(config).render(pass_, sink)


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Palette:
    background: Color
    foreground: Color
    label: Color

    @classmethod
    def for_pass(cls, pass_: ParsedPass, config: LayoutConfig) -> "Palette":
        for role, value in (
            ("backgroundColor", pass_.background_color),
            ("foregroundColor", pass_.foreground_color),
            ("labelColor", pass_.label_color),
        ):
            if value is not None and not is_valid_color(value):
                logger.warning("Unrecognized %s %r, using the default", role, value)
        return cls(
            background=parse_color(pass_.background_color, config.default_background),
            foreground=parse_color(pass_.foreground_color, config.default_foreground),
            label=parse_color(pass_.label_color, config.default_label),
        )


@dataclass(frozen=True)
class _BackFieldStyle:
    label_size: float
    label_drop: float
    label_color: Color
    value_size: float
    line_step: float
    field_gap: float
    max_lines: int | None


class _PassLayout:
    """Draws one pass on a fresh canvas; lives for a single render call."""

    def __init__(self, pdf_canvas: canvas.Canvas, pass_: ParsedPass, config: LayoutConfig) -> None:
        self.c = pdf_canvas
        self.pass_ = pass_
        self.cfg = config
        self.palette = Palette.for_pass(pass_, config)

    def draw(self) -> int:
        """Draw every section and return the number of pages produced."""
        cfg = self.cfg
        pages = 1

        self.draw_background()
        y = cfg.top
        y = self.draw_header(y)
        y = self.draw_field_grid(y, self.pass_.header_fields, cfg.header_columns, cfg.header_field_sizes)
        y = self.draw_strip(y)
        y = self.draw_title(y)
        y = self.draw_style_label(y)
        y = self.draw_separator(y)
        y = self.draw_primary_fields(y)
        y = self.draw_field_grid(y, self.pass_.secondary_fields, cfg.secondary_columns, cfg.secondary_field_sizes)
        y = self.draw_auxiliary_fields(y)
        y = self.draw_barcode(y)

        if self.pass_.back_fields and y < cfg.page_break_threshold:
            logger.debug("Cursor at %.1f, moving back fields to a new page", y)
            self.draw_footer()
            self.c.showPage()
            pages += 1
            self.draw_background()
            self.draw_back_page(cfg.top)
        else:
            if self.pass_.back_fields:
                self.draw_back_inline(y)
            self.draw_footer()

        self.c.showPage()
        return pages

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def draw_background(self) -> None:
        self.c.setFillColor(self.palette.background)
        self.c.rect(0, 0, self.cfg.page_width, self.cfg.page_height, stroke=0, fill=1)

    def draw_header(self, y: float) -> float:
        cfg = self.cfg
        logo_text = self.pass_.logo_text
        logo = self._load_image("logo")

        drew_logo = False
        if logo is not None:
            width = _scaled_width(logo, cfg.logo_height)
            drew_logo = self._draw_image(logo, cfg.margin, y - cfg.logo_height, width, cfg.logo_height)
        if drew_logo:
            if logo_text:
                self._text(
                    cfg.margin + width + cfg.logo_text_gap, y - cfg.header_text_drop,
                    logo_text, cfg.bold_font, cfg.header_text_size, self.palette.foreground,
                )
        else:
            self._text(
                cfg.margin, y - cfg.header_text_drop,
                logo_text or self.pass_.organization_name,
                cfg.bold_font, cfg.header_text_size, self.palette.foreground,
            )

        thumbnail = self._load_image("thumbnail")
        if thumbnail is not None:
            width = _scaled_width(thumbnail, cfg.thumbnail_height)
            self._draw_image(
                thumbnail,
                cfg.page_width - cfg.margin - width,
                y - cfg.thumbnail_height,
                width,
                cfg.thumbnail_height,
            )

        return y - cfg.header_band

    def draw_strip(self, y: float) -> float:
        """Full-width strip image; anything taller than the cap is clipped."""
        cfg = self.cfg
        strip = self._load_image("strip")
        if strip is None:
            return y

        image_width, image_height = strip.getSize()
        width = cfg.content_width
        natural_height = image_height * (width / image_width)
        shown_height = min(natural_height, cfg.strip_max_height)

        self.c.saveState()
        clip = self.c.beginPath()
        clip.rect(cfg.margin, y - shown_height, width, shown_height)
        self.c.clipPath(clip, stroke=0, fill=0)
        drawn = self._draw_image(strip, cfg.margin, y - natural_height, width, natural_height)
        self.c.restoreState()

        if not drawn:
            return y
        return y - shown_height - cfg.strip_gap

    def draw_title(self, y: float) -> float:
        cfg = self.cfg
        lines = wrap_text(self.pass_.description, cfg.bold_font, cfg.title_size, cfg.content_width)
        line_y = y
        for line in lines:
            self._text(cfg.margin, line_y, line, cfg.bold_font, cfg.title_size, self.palette.foreground)
            line_y -= cfg.title_line_height
        extra_lines = max(len(lines) - 1, 0)
        return y - cfg.title_drop - extra_lines * cfg.title_line_height

    def draw_style_label(self, y: float) -> float:
        cfg = self.cfg
        label = format_style_label(self.pass_.style, self.pass_.transit_type)
        self._text(cfg.margin, y, label, cfg.font, cfg.style_label_size, self.palette.label)
        return y - cfg.style_label_drop

    def draw_separator(self, y: float, gap: float | None = None) -> float:
        cfg = self.cfg
        self.c.setStrokeColor(self.palette.label)
        self.c.setLineWidth(cfg.separator_width)
        self.c.line(cfg.margin, y, cfg.page_width - cfg.margin, y)
        return y - (cfg.separator_gap if gap is None else gap)

    def draw_primary_fields(self, y: float) -> float:
        cfg = self.cfg
        if not self.pass_.primary_fields:
            return y
        y = self.draw_field_grid(y, self.pass_.primary_fields, cfg.primary_columns, cfg.primary_field_sizes)
        return y - cfg.primary_trailing_gap

    def draw_auxiliary_fields(self, y: float) -> float:
        cfg = self.cfg
        if not self.pass_.auxiliary_fields:
            return y
        y = self.draw_separator(y)
        return self.draw_field_grid(y, self.pass_.auxiliary_fields, cfg.secondary_columns, cfg.secondary_field_sizes)

    def draw_field_grid(
        self,
        y: float,
        fields: Sequence[PassField],
        max_columns: int,
        sizes: tuple[float, float],
    ) -> float:
        """
        Draw ``fields`` in a grid of up to ``max_columns`` columns.

        Field ``i`` goes to column ``i % columns``. The cursor moves down once
        per completed row (or after the last field), by the label block,
        value size and row padding.
        """
        if not fields:
            return y

        cfg = self.cfg
        label_size, value_size = sizes
        columns = max(1, min(len(fields), max_columns))
        column_width = cfg.content_width / columns
        label_block = label_size + cfg.label_value_gap
        row_has_label = False

        for i, field in enumerate(fields):
            col = i % columns
            x = cfg.margin + col * column_width

            if field.label:
                row_has_label = True
                self._text(x, y, field.label.upper(), cfg.font, label_size, self.palette.label)

            value = fit_text(
                format_field_value(field),
                cfg.bold_font,
                value_size,
                column_width - cfg.column_padding,
            )
            value_y = y - label_block if field.label else y
            self._text(x, value_y, value, cfg.bold_font, value_size, self.palette.foreground)

            if col == columns - 1 or i == len(fields) - 1:
                y -= (label_block if row_has_label else 0) + value_size + cfg.row_padding
                row_has_label = False

        return y

    def draw_barcode(self, y: float) -> float:
        cfg = self.cfg
        barcode = self.pass_.barcode
        if barcode is None:
            return y

        y = self.draw_separator(y, gap=cfg.barcode_top_gap)

        size = cfg.barcode_size
        try:
            symbol = encode_matrix_barcode(barcode.message, size)
        except BarcodeEncodingError as exc:
            logger.warning("Skipping barcode image: %s", exc)
        else:
            renderPDF.draw(symbol, self.c, (cfg.page_width - size) / 2, y - size)
            y -= size + cfg.barcode_bottom_gap

        format_label = barcode.format_label
        self._centered(y, format_label, cfg.font, cfg.barcode_format_size, self.palette.label)
        y -= cfg.barcode_format_drop

        if barcode.alt_text:
            alt_text = fit_text(barcode.alt_text, cfg.bold_font, cfg.barcode_alt_size, cfg.content_width)
            self._centered(y, alt_text, cfg.bold_font, cfg.barcode_alt_size, self.palette.foreground)
            y -= cfg.barcode_alt_drop

        return y

    def draw_back_inline(self, y: float) -> float:
        """Back fields on the current page: small type, capped lines per value."""
        cfg = self.cfg
        y = self.draw_separator(y)
        self._text(cfg.margin, y, cfg.back_title, cfg.bold_font, cfg.inline_title_size, self.palette.foreground)
        y -= cfg.inline_title_drop
        style = _BackFieldStyle(
            label_size=cfg.inline_label_size,
            label_drop=cfg.inline_label_drop,
            label_color=self.palette.label,
            value_size=cfg.inline_value_size,
            line_step=cfg.inline_line_step,
            field_gap=cfg.inline_field_gap,
            max_lines=cfg.inline_max_lines,
        )
        return self._draw_back_fields(y, style)

    def draw_back_page(self, y: float) -> float:
        """Back fields on their own page: larger type, no line cap."""
        cfg = self.cfg
        self._text(cfg.margin, y, cfg.back_title, cfg.bold_font, cfg.page_title_size, self.palette.foreground)
        y -= cfg.page_title_drop
        style = _BackFieldStyle(
            label_size=cfg.page_label_size,
            label_drop=cfg.page_label_drop,
            label_color=self.palette.foreground,
            value_size=cfg.page_value_size,
            line_step=cfg.page_line_step,
            field_gap=cfg.page_field_gap,
            max_lines=None,
        )
        return self._draw_back_fields(y, style)

    def draw_footer(self) -> None:
        cfg = self.cfg
        if self.pass_.serial_number:
            self._text(
                cfg.margin, cfg.footer_y, f"Serial: {self.pass_.serial_number}",
                cfg.font, cfg.footer_size, self.palette.label,
            )
        date_text = format_footer_date(self.pass_.relevant_date)
        if date_text:
            self._text_right(
                cfg.page_width - cfg.margin, cfg.footer_y, f"Date: {date_text}",
                cfg.font, cfg.footer_size, self.palette.label,
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _draw_back_fields(self, y: float, style: _BackFieldStyle) -> float:
        cfg = self.cfg
        fields = self.pass_.back_fields
        for index, field in enumerate(fields):
            if y < cfg.bottom_threshold:
                logger.warning("Omitting %d back field(s) that do not fit", len(fields) - index)
                break

            if field.label:
                self._text(cfg.margin, y, field.label, cfg.bold_font, style.label_size, style.label_color)
                y -= style.label_drop

            lines = wrap_text(format_field_value(field), cfg.font, style.value_size, cfg.content_width)
            if style.max_lines is not None:
                lines = lines[: style.max_lines]
            for line in lines:
                if y < cfg.bottom_threshold:
                    break
                self._text(cfg.margin, y, line, cfg.font, style.value_size, self.palette.foreground)
                y -= style.line_step
            y -= style.field_gap
        return y

    def _text(self, x: float, y: float, text: str, font: str, size: float, color: Color) -> None:
        if not text:
            return
        self.c.setFont(font, size)
        self.c.setFillColor(color)
        self.c.drawString(x, y, text)

    def _text_right(self, x: float, y: float, text: str, font: str, size: float, color: Color) -> None:
        if not text:
            return
        self.c.setFont(font, size)
        self.c.setFillColor(color)
        self.c.drawRightString(x, y, text)

    def _centered(self, y: float, text: str, font: str, size: float, color: Color) -> None:
        x = (self.cfg.page_width - stringWidth(text, font, size)) / 2
        self._text(x, y, text, font, size, color)

    def _load_image(self, role: str) -> ImageReader | None:
        data = self.pass_.images.get(role)
        if data is None:
            return None
        try:
            image = ImageReader(io.BytesIO(data))
            width, height = image.getSize()
        except Exception as exc:
            logger.warning("Skipping %s image that cannot be decoded: %s", role, exc)
            return None
        if width <= 0 or height <= 0:
            logger.warning("Skipping %s image with empty dimensions", role)
            return None
        return image

    def _draw_image(self, image: ImageReader, x: float, y: float, width: float, height: float) -> bool:
        try:
            self.c.drawImage(image, x, y, width=width, height=height, mask="auto")
        except Exception as exc:
            logger.warning("Skipping image that cannot be embedded: %s", exc)
            return False
        return True


def _scaled_width(image: ImageReader, height: float) -> float:
    image_width, image_height = image.getSize()
    return image_width * (height / image_height)
