"""
Errors
=======
Exception hierarchy for pkpass-pdf.

Only archive/manifest problems and sink write failures are fatal. Everything
else encountered while rendering (bad colours, undecodable images, unparseable
dates, overflowing text) is logged and degraded by the layout engine.
"""

from __future__ import annotations


class PassError(Exception):
    """Base class for all pkpass-pdf errors."""


class FormatError(PassError):
    """The input could not be read as a wallet pass archive."""


class InvalidArchiveError(FormatError):
    """The input bytes are not a ZIP container."""


class MissingManifestError(FormatError):
    """The archive has no ``pass.json`` entry."""


class MalformedManifestError(FormatError):
    """``pass.json`` exists but is not a well-formed JSON object."""


class RenderError(PassError):
    """The document could not be produced."""


class SinkWriteError(RenderError):
    """Writing the finished document to its destination failed."""


class BarcodeEncodingError(PassError):
    """A barcode message cannot be encoded as a matrix code."""
