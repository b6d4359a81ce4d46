"""
Pass Archive Builder
=====================
Fluent builder API for assembling ``.pkpass`` archives.

Produces unsigned archives (``pass.json`` plus PNG assets) suitable for
fixtures, demos and round-trips through the converter. No ``manifest.json``
or signature is written.

Example::

    from pkpass_pdf import PassArchiveBuilder

    data = (
        PassArchiveBuilder.event_ticket()
        .organization("Test Events Inc.")
        .describe("Concert Ticket - Rock Festival 2024")
        .serial("TEST-001-2024")
        .field("primary", "event", "Rock Festival 2024", label="EVENT")
        .barcode("https://example.com/ticket/TEST-001-2024", alt_text="TEST-001-2024")
        .build()
    )
"""

from __future__ import annotations

import io
import json
import zipfile
from pathlib import Path
from typing import Any

from ..models.pkpass import IMAGE_ROLES, BarcodeFormat, PassStyle, TransitType
from ..pkpass.reader import MANIFEST_NAME

_SECTIONS = {
    "header": "headerFields",
    "primary": "primaryFields",
    "secondary": "secondaryFields",
    "auxiliary": "auxiliaryFields",
    "back": "backFields",
}

_HINT_ALIASES = {
    "currency_code": "currencyCode",
    "date_style": "dateStyle",
    "time_style": "timeStyle",
    "number_style": "numberStyle",
    "text_alignment": "textAlignment",
    "change_message": "changeMessage",
    "is_relative": "isRelative",
}


class PassArchiveBuilder:
    """
    Fluent builder for ``.pkpass`` archives.

    Typically instantiated via the factory class methods
    (e.g. ``PassArchiveBuilder.boarding_pass()``).
    """

    def __init__(self, style: PassStyle | str | None = PassStyle.GENERIC) -> None:
        self._style = style.value if isinstance(style, PassStyle) else style
        self._manifest: dict[str, Any] = {
            "formatVersion": 1,
            "passTypeIdentifier": "pass.com.example.test",
            "serialNumber": "0001",
            "teamIdentifier": "EXAMPLE123",
            "organizationName": "Example Org",
            "description": "Example Pass",
        }
        self._content: dict[str, Any] = {}
        self._files: dict[str, bytes] = {}
        self._manifest_bytes: bytes | None = None
        self._omit_manifest = False

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def boarding_pass(cls, transit_type: TransitType | str = TransitType.AIR) -> "PassArchiveBuilder":
        return cls(PassStyle.BOARDING_PASS).transit(transit_type)

    @classmethod
    def coupon(cls) -> "PassArchiveBuilder":
        return cls(PassStyle.COUPON)

    @classmethod
    def event_ticket(cls) -> "PassArchiveBuilder":
        return cls(PassStyle.EVENT_TICKET)

    @classmethod
    def generic(cls) -> "PassArchiveBuilder":
        return cls(PassStyle.GENERIC)

    @classmethod
    def store_card(cls) -> "PassArchiveBuilder":
        return cls(PassStyle.STORE_CARD)

    @classmethod
    def without_style(cls) -> "PassArchiveBuilder":
        """A manifest with no style key at all."""
        return cls(None)

    def style(self, style: PassStyle | str | None) -> "PassArchiveBuilder":
        """Change the style key the field content is written under."""
        self._style = style.value if isinstance(style, PassStyle) else style
        return self

    # ------------------------------------------------------------------
    # Top-level manifest keys
    # ------------------------------------------------------------------

    def organization(self, name: str) -> "PassArchiveBuilder":
        self._manifest["organizationName"] = name
        return self

    def describe(self, description: str) -> "PassArchiveBuilder":
        self._manifest["description"] = description
        return self

    def logo_text(self, text: str) -> "PassArchiveBuilder":
        self._manifest["logoText"] = text
        return self

    def serial(self, serial_number: str) -> "PassArchiveBuilder":
        self._manifest["serialNumber"] = serial_number
        return self

    def colors(
        self,
        foreground: str | None = None,
        background: str | None = None,
        label: str | None = None,
    ) -> "PassArchiveBuilder":
        for key, value in (
            ("foregroundColor", foreground),
            ("backgroundColor", background),
            ("labelColor", label),
        ):
            if value is not None:
                self._manifest[key] = value
        return self

    def relevant_date(self, value: str) -> "PassArchiveBuilder":
        self._manifest["relevantDate"] = value
        return self

    def expiration_date(self, value: str) -> "PassArchiveBuilder":
        self._manifest["expirationDate"] = value
        return self

    def manifest_entry(self, key: str, value: Any) -> "PassArchiveBuilder":
        """Set any top-level manifest key, including additional style keys."""
        self._manifest[key] = value
        return self

    # ------------------------------------------------------------------
    # Style content
    # ------------------------------------------------------------------

    def transit(self, transit_type: TransitType | str) -> "PassArchiveBuilder":
        self._content["transitType"] = (
            transit_type.value if isinstance(transit_type, TransitType) else transit_type
        )
        return self

    def field(
        self,
        section: str,
        key: str,
        value: str | int | float,
        label: str | None = None,
        **hints: Any,
    ) -> "PassArchiveBuilder":
        """
        Append a field to ``section`` (header, primary, secondary, auxiliary, back).

        Hints use Python names (``currency_code``, ``date_style`` ...).
        """
        if section not in _SECTIONS:
            raise ValueError(f"unknown section {section!r}; expected one of {sorted(_SECTIONS)}")
        entry: dict[str, Any] = {"key": key, "value": value}
        if label is not None:
            entry["label"] = label
        for name, hint in hints.items():
            entry[_HINT_ALIASES.get(name, name)] = hint
        self._content.setdefault(_SECTIONS[section], []).append(entry)
        return self

    # ------------------------------------------------------------------
    # Barcodes
    # ------------------------------------------------------------------

    def barcode(
        self,
        message: str,
        format: BarcodeFormat | str = BarcodeFormat.QR,
        alt_text: str | None = None,
        encoding: str = "iso-8859-1",
    ) -> "PassArchiveBuilder":
        """Append an entry to the ``barcodes`` list."""
        self._manifest.setdefault("barcodes", []).append(_barcode_entry(message, format, alt_text, encoding))
        return self

    def legacy_barcode(
        self,
        message: str,
        format: BarcodeFormat | str = BarcodeFormat.QR,
        alt_text: str | None = None,
        encoding: str = "iso-8859-1",
    ) -> "PassArchiveBuilder":
        """Set the deprecated single ``barcode`` key."""
        self._manifest["barcode"] = _barcode_entry(message, format, alt_text, encoding)
        return self

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def image(self, role: str, data: bytes, scale: int = 1) -> "PassArchiveBuilder":
        """Add ``{role}.png`` (scale 1) or ``{role}@{scale}x.png``."""
        if role not in IMAGE_ROLES:
            raise ValueError(f"unknown image role {role!r}")
        if scale not in (1, 2, 3):
            raise ValueError("scale must be 1, 2 or 3")
        name = f"{role}.png" if scale == 1 else f"{role}@{scale}x.png"
        self._files[name] = data
        return self

    def file(self, name: str, data: bytes) -> "PassArchiveBuilder":
        """Add an arbitrary archive entry."""
        self._files[name] = data
        return self

    def raw_manifest(self, data: bytes) -> "PassArchiveBuilder":
        """Write ``data`` verbatim as ``pass.json`` instead of the built manifest."""
        self._manifest_bytes = data
        return self

    def omit_manifest(self) -> "PassArchiveBuilder":
        self._omit_manifest = True
        return self

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def manifest(self) -> dict[str, Any]:
        """The ``pass.json`` content as a dict."""
        manifest = dict(self._manifest)
        if self._style is not None:
            manifest[self._style] = {**manifest.get(self._style, {}), **self._content}
        return manifest

    def build(self) -> bytes:
        """Return the archive as ZIP bytes."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            if not self._omit_manifest:
                payload = self._manifest_bytes
                if payload is None:
                    payload = json.dumps(self.manifest(), ensure_ascii=False, indent=2).encode("utf-8")
                zf.writestr(MANIFEST_NAME, payload)
            for name, data in self._files.items():
                zf.writestr(name, data)
        return buffer.getvalue()

    def write(self, path: str | Path) -> Path:
        """Build and write the archive to ``path``."""
        target = Path(path)
        target.write_bytes(self.build())
        return target


def _barcode_entry(
    message: str,
    format: BarcodeFormat | str,
    alt_text: str | None,
    encoding: str,
) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "message": message,
        "format": format.value if isinstance(format, BarcodeFormat) else format,
        "messageEncoding": encoding,
    }
    if alt_text is not None:
        entry["altText"] = alt_text
    return entry
