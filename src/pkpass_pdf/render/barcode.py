"""
Matrix Barcode
===============
Encodes a barcode message as a QR code drawing for the layout engine.

The symbol is always QR regardless of the pass's declared format: error
correction level M, one-module quiet zone, black on white, fixed square size.
"""

from __future__ import annotations

from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing, Rect
from reportlab.lib import colors

from ..errors import BarcodeEncodingError

ERROR_CORRECTION_LEVEL = "M"
QUIET_ZONE_MODULES = 1


def encode_matrix_barcode(message: str, size: float = 120.0) -> Drawing:
    """
    Return a ``size`` x ``size`` drawing of ``message`` as a QR code.

    Raises BarcodeEncodingError when the message exceeds QR capacity.
    """
    widget = QrCodeWidget(
        message,
        barLevel=ERROR_CORRECTION_LEVEL,
        barBorder=QUIET_ZONE_MODULES,
        barWidth=size,
        barHeight=size,
        barFillColor=colors.black,
        barStrokeColor=colors.black,
    )
    try:
        # Forces the encoder to run so capacity errors surface here.
        widget.getBounds()
    except Exception as exc:
        raise BarcodeEncodingError(f"Cannot encode barcode message as QR: {exc}") from exc

    drawing = Drawing(size, size)
    drawing.add(Rect(0, 0, size, size, fillColor=colors.white, strokeColor=None))
    drawing.add(widget)
    return drawing
