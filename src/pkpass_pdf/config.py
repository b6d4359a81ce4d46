"""Layout constants for the pass renderer."""

from __future__ import annotations

from dataclasses import dataclass

RGB = tuple[float, float, float]


@dataclass(frozen=True)
class LayoutConfig:
    """
    Every tuning value of the layout engine, kept in one place.

    The thresholds and line caps were tuned for the default 400x700 canvas;
    when changing the page size adjust them together.
    Use ``dataclasses.replace(DEFAULT_LAYOUT, ...)`` for variants.
    """

    # Canvas (points)
    page_width: float = 400.0
    page_height: float = 700.0
    margin: float = 30.0

    # Fonts
    font: str = "Helvetica"
    bold_font: str = "Helvetica-Bold"

    # Default colours per role
    default_background: RGB = (0.95, 0.95, 0.95)
    default_foreground: RGB = (0.1, 0.1, 0.1)
    default_label: RGB = (0.4, 0.4, 0.4)

    # Header row
    logo_height: float = 30.0
    thumbnail_height: float = 50.0
    header_text_size: float = 14.0
    header_text_drop: float = 20.0
    logo_text_gap: float = 10.0
    header_band: float = 50.0

    # Field grids: (label size, value size)
    header_field_sizes: tuple[float, float] = (7.0, 10.0)
    primary_field_sizes: tuple[float, float] = (9.0, 16.0)
    secondary_field_sizes: tuple[float, float] = (8.0, 11.0)
    header_columns: int = 3
    primary_columns: int = 2
    secondary_columns: int = 3
    label_value_gap: float = 6.0
    row_padding: float = 12.0
    column_padding: float = 10.0
    primary_trailing_gap: float = 5.0

    # Strip image
    strip_max_height: float = 120.0
    strip_gap: float = 15.0

    # Title / style label / separators
    title_size: float = 18.0
    title_drop: float = 30.0
    title_line_height: float = 22.0
    style_label_size: float = 9.0
    style_label_drop: float = 20.0
    separator_width: float = 0.5
    separator_gap: float = 15.0

    # Barcode block
    barcode_size: float = 120.0
    barcode_top_gap: float = 20.0
    barcode_bottom_gap: float = 10.0
    barcode_format_size: float = 8.0
    barcode_format_drop: float = 12.0
    barcode_alt_size: float = 10.0
    barcode_alt_drop: float = 15.0

    # Back fields
    back_title: str = "Additional Information"
    page_break_threshold: float = 150.0
    bottom_threshold: float = 50.0
    inline_max_lines: int = 3
    inline_title_size: float = 10.0
    inline_title_drop: float = 18.0
    inline_label_size: float = 8.0
    inline_label_drop: float = 11.0
    inline_value_size: float = 9.0
    inline_line_step: float = 12.0
    inline_field_gap: float = 8.0
    page_title_size: float = 14.0
    page_title_drop: float = 25.0
    page_label_size: float = 9.0
    page_label_drop: float = 12.0
    page_value_size: float = 10.0
    page_line_step: float = 14.0
    page_field_gap: float = 10.0

    # Footer
    footer_y: float = 25.0
    footer_size: float = 7.0

    def __post_init__(self) -> None:
        if self.page_width <= 0 or self.page_height <= 0:
            raise ValueError("page dimensions must be positive")
        if self.margin < 0 or self.content_width <= 0:
            raise ValueError("margin leaves no content width")

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def page_size(self) -> tuple[float, float]:
        return (self.page_width, self.page_height)

    @property
    def top(self) -> float:
        """Starting value of the vertical cursor."""
        return self.page_height - self.margin


DEFAULT_LAYOUT = LayoutConfig()
