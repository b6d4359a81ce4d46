"""
pkpass-pdf – Apple Wallet passes to PDF
========================================
Converts ``.pkpass`` archives into a printable, fixed-size PDF: the front of
the pass on page one, back fields in place or on a second page.

Two stages:
- Archive Normalizer: ``.pkpass`` bytes -> :class:`ParsedPass`
- Layout Engine: :class:`ParsedPass` -> PDF written to a path or stream

Quick Start::

    from pkpass_pdf import PassArchiveBuilder, RenderedPassReader, parse_pkpass, render_pass

    # Build a fixture archive
    data = (
        PassArchiveBuilder.event_ticket()
        .organization("Test Events Inc.")
        .describe("Concert Ticket - Rock Festival 2024")
        .serial("TEST-001-2024")
        .field("primary", "event", "Rock Festival 2024", label="EVENT")
        .barcode("https://example.com/ticket/TEST-001-2024")
        .build()
    )

    # Normalize and render
    pass_ = parse_pkpass(data)
    render_pass(pass_, "ticket.pdf")

    # Read back
    with RenderedPassReader("ticket.pdf") as reader:
        print(reader.page_count, reader.metadata()["Title"])
"""

__version__ = "0.1.0"

# Core models
from .models.pkpass import (
    ParsedPass,
    PassField,
    PassBarcode,
    PassImages,
    PassStyle,
    TransitType,
    BarcodeFormat,
    DateStyle,
    NumberStyle,
    TextAlignment,
)
from .config import LayoutConfig, DEFAULT_LAYOUT
from .errors import (
    PassError,
    FormatError,
    InvalidArchiveError,
    MissingManifestError,
    MalformedManifestError,
    RenderError,
    SinkWriteError,
    BarcodeEncodingError,
)

# Archive normalizer
from .pkpass.reader import PassArchive, parse_pkpass, parse_pkpass_file

# Layout engine
from .render.layout import PassRenderer, render_pass

# Builders
from .builder.archive_builder import PassArchiveBuilder

# PDF I/O
from .pdf.writer import PassDocumentWriter
from .pdf.reader import RenderedPassReader

# Validator
from .validator.diagnostics import (
    PassValidator,
    ValidationResult,
    ValidationIssue,
    Severity,
)

__all__ = [
    # Models
    "ParsedPass",
    "PassField",
    "PassBarcode",
    "PassImages",
    "PassStyle",
    "TransitType",
    "BarcodeFormat",
    "DateStyle",
    "NumberStyle",
    "TextAlignment",
    "LayoutConfig",
    "DEFAULT_LAYOUT",
    # Errors
    "PassError",
    "FormatError",
    "InvalidArchiveError",
    "MissingManifestError",
    "MalformedManifestError",
    "RenderError",
    "SinkWriteError",
    "BarcodeEncodingError",
    # Normalizer
    "PassArchive",
    "parse_pkpass",
    "parse_pkpass_file",
    # Layout
    "PassRenderer",
    "render_pass",
    # Builders
    "PassArchiveBuilder",
    # PDF I/O
    "PassDocumentWriter",
    "RenderedPassReader",
    # Validation
    "PassValidator",
    "ValidationResult",
    "ValidationIssue",
    "Severity",
]
