"""
PDF Writer
===========
Document sink for rendered passes, built on pikepdf.

Takes the PDF produced by the layout engine, stamps the document
information dictionary (title, author, subject, creator, producer) and
writes the result to a file path or binary stream.

Example::

    from pkpass_pdf import PassDocumentWriter

    with PassDocumentWriter(pdf_bytes) as writer:
        writer.set_metadata(title="Concert Ticket", author="Test Events Inc.")
        writer.save("ticket.pdf")
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, BinaryIO

import pikepdf

from .. import __version__
from ..errors import SinkWriteError


class PassDocumentWriter:
    """
    Context-manager-based writer for rendered pass documents.

    Usage::

        with PassDocumentWriter(pdf_bytes) as w:
            w.set_metadata(title="Boarding Pass")
            w.save(output_path)
    """

    PRODUCER = f"pkpass-pdf v{__version__}"

    def __init__(self, document: bytes) -> None:
        """
        Parameters
        ----------
        document:
            Complete PDF bytes as produced by the layout engine.
        """
        self._pdf = pikepdf.open(io.BytesIO(document))

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> "PassDocumentWriter":
        return self

    def __exit__(self, *_: Any) -> None:
        self._pdf.close()

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def set_metadata(
        self,
        *,
        title: str | None = None,
        author: str | None = None,
        subject: str | None = None,
    ) -> None:
        """Write the document information dictionary. Empty values are skipped."""
        info = self._pdf.docinfo
        if title:
            info["/Title"] = pikepdf.String(title)
        if author:
            info["/Author"] = pikepdf.String(author)
        if subject:
            info["/Subject"] = pikepdf.String(subject)
        info["/Creator"] = pikepdf.String(self.PRODUCER)
        info["/Producer"] = pikepdf.String(self.PRODUCER)

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self, output: str | Path | BinaryIO) -> None:
        """
        Write the document to ``output``.

        Parameters
        ----------
        output:
            Destination file path or writable binary stream.

        Raises SinkWriteError when the destination cannot be written.
        """
        target = str(output) if isinstance(output, Path) else output
        try:
            self._pdf.save(target, deterministic_id=True)
        except (OSError, ValueError) as exc:
            raise SinkWriteError(f"Cannot write PDF to {output}: {exc}") from exc

    @property
    def page_count(self) -> int:
        return len(self._pdf.pages)

    @property
    def pdf(self) -> pikepdf.Pdf:
        """Direct access to the underlying pikepdf.Pdf object."""
        return self._pdf
