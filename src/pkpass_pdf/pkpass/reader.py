"""
Pass Archive Reader
====================
Opens a ``.pkpass`` ZIP container and normalizes its ``pass.json`` manifest
and image assets into a :class:`~pkpass_pdf.models.pkpass.ParsedPass`.

Normalization rules:
- Style: first of boardingPass, coupon, eventTicket, generic, storeCard
  present on the manifest root; ``generic`` when none is.
- Field sections: taken from the style's sub-object; missing sections are
  empty tuples.
- Barcode: ``barcodes[0]`` when it is a usable entry, else the legacy
  ``barcode`` object, else none.
- Images: ``{role}@3x.png``, then ``@2x``, then the base file. The suffix is
  trusted; payloads are never decoded.

Example::

    from pkpass_pdf import PassArchive, parse_pkpass

    pass_ = parse_pkpass(Path("ticket.pkpass").read_bytes())

    with PassArchive("ticket.pkpass") as archive:
        print(archive.names())
        pass_ = archive.parse()
"""

from __future__ import annotations

import io
import json
import logging
import zipfile
from pathlib import Path
from typing import Any, BinaryIO

from pydantic import ValidationError

from ..errors import InvalidArchiveError, MalformedManifestError, MissingManifestError
from ..models.pkpass import (
    IMAGE_ROLES,
    PASS_STYLE_PRIORITY,
    ParsedPass,
    PassBarcode,
    PassField,
    PassImages,
    PassStyle,
)

logger = logging.getLogger(__name__)

MANIFEST_NAME = "pass.json"

# Manifest key for each canonical section name.
_SECTION_KEYS = {
    "header_fields": "headerFields",
    "primary_fields": "primaryFields",
    "secondary_fields": "secondaryFields",
    "auxiliary_fields": "auxiliaryFields",
    "back_fields": "backFields",
}

_FIELD_HINT_KEYS = (
    "changeMessage",
    "textAlignment",
    "dateStyle",
    "timeStyle",
    "currencyCode",
    "numberStyle",
)


def image_variants(role: str) -> tuple[str, str, str]:
    """Candidate entry names for ``role``, highest resolution first."""
    return (f"{role}@3x.png", f"{role}@2x.png", f"{role}.png")


class PassArchive:
    """
    Context-manager-based reader for ``.pkpass`` archives.

    Accepts raw bytes, a filesystem path, or a seekable binary stream.
    """

    def __init__(self, source: bytes | str | Path | BinaryIO) -> None:
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(source)
        try:
            self._zip = zipfile.ZipFile(source)
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
            raise InvalidArchiveError(f"Invalid .pkpass file: not a ZIP archive ({exc})") from exc

    def __enter__(self) -> "PassArchive":
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def names(self) -> list[str]:
        """All entry names in archive order."""
        return self._zip.namelist()

    def has_entry(self, name: str) -> bool:
        try:
            self._zip.getinfo(name)
        except KeyError:
            return False
        return True

    def read_manifest(self) -> dict[str, Any]:
        """Return ``pass.json`` as a dict."""
        if not self.has_entry(MANIFEST_NAME):
            raise MissingManifestError("Invalid .pkpass file: pass.json not found")

        try:
            text = self._zip.read(MANIFEST_NAME).decode("utf-8-sig")
            manifest = json.loads(text)
        except (ValueError, zipfile.BadZipFile) as exc:
            raise MalformedManifestError("Invalid .pkpass file: pass.json is not valid JSON") from exc

        if not isinstance(manifest, dict):
            raise MalformedManifestError("Invalid .pkpass file: pass.json is not valid JSON")
        return manifest

    def read_image(self, role: str) -> bytes | None:
        """Best-resolution payload for ``role``, or None when no variant exists."""
        for name in image_variants(role):
            if self.has_entry(name):
                return self._zip.read(name)
        return None

    def parse(self) -> ParsedPass:
        """Normalize the archive into a ParsedPass."""
        manifest = self.read_manifest()

        style = detect_style(manifest)
        content = manifest.get(style.value)
        if not isinstance(content, dict):
            content = {}

        sections = {
            name: extract_fields(content.get(key), section=key)
            for name, key in _SECTION_KEYS.items()
        }

        images = PassImages(**{role: self.read_image(role) for role in IMAGE_ROLES})
        barcode = select_barcode(manifest)

        transit_type = None
        if style == PassStyle.BOARDING_PASS:
            transit_type = _str_or_none(content.get("transitType"))

        logger.debug(
            "Parsed pass: style=%s barcode=%s images=%s",
            style.value,
            barcode.format if barcode else None,
            images.present_roles(),
        )

        return ParsedPass(
            style=style,
            organization_name=_str_or_none(manifest.get("organizationName")) or "",
            description=_str_or_none(manifest.get("description")) or "",
            logo_text=_str_or_none(manifest.get("logoText")),
            barcode=barcode,
            images=images,
            foreground_color=_str_or_none(manifest.get("foregroundColor")),
            background_color=_str_or_none(manifest.get("backgroundColor")),
            label_color=_str_or_none(manifest.get("labelColor")),
            transit_type=transit_type,
            relevant_date=_str_or_none(manifest.get("relevantDate")),
            expiration_date=_str_or_none(manifest.get("expirationDate")),
            serial_number=_str_or_none(manifest.get("serialNumber")),
            raw=manifest,
            **sections,
        )


# ---------------------------------------------------------------------------
# Module-level entry points
# ---------------------------------------------------------------------------


def parse_pkpass(data: bytes) -> ParsedPass:
    """Parse ``.pkpass`` archive bytes."""
    with PassArchive(data) as archive:
        return archive.parse()


def parse_pkpass_file(path: str | Path) -> ParsedPass:
    """Read and parse a ``.pkpass`` file from disk."""
    return parse_pkpass(Path(path).read_bytes())


# ---------------------------------------------------------------------------
# Normalization steps
# ---------------------------------------------------------------------------


def detect_style(manifest: dict[str, Any]) -> PassStyle:
    """First style key present as an object on the root, else ``generic``."""
    for style in PASS_STYLE_PRIORITY:
        if isinstance(manifest.get(style.value), dict):
            return style
    return PassStyle.GENERIC


def present_styles(manifest: dict[str, Any]) -> list[PassStyle]:
    """All style keys present on the root, in priority order."""
    return [s for s in PASS_STYLE_PRIORITY if isinstance(manifest.get(s.value), dict)]


def extract_fields(entries: Any, *, section: str = "") -> tuple[PassField, ...]:
    """Normalize one field-section list; malformed entries are skipped."""
    if not isinstance(entries, list):
        if entries is not None:
            logger.warning("Ignoring %s: expected a list, got %s", section, type(entries).__name__)
        return ()

    fields: list[PassField] = []
    for index, entry in enumerate(entries):
        field = _parse_field(entry)
        if field is None:
            logger.warning("Skipping malformed entry %d in %s", index, section)
            continue
        fields.append(field)
    return tuple(fields)


def select_barcode(manifest: dict[str, Any]) -> PassBarcode | None:
    """``barcodes[0]`` when it is a usable entry, else the legacy ``barcode``."""
    barcodes = manifest.get("barcodes")
    if isinstance(barcodes, list) and barcodes:
        barcode = _parse_barcode(barcodes[0])
        if barcode is not None:
            return barcode
    return _parse_barcode(manifest.get("barcode"))


def _parse_field(entry: Any) -> PassField | None:
    if not isinstance(entry, dict):
        return None
    key = _str_or_none(entry.get("key"))
    if key is None:
        return None

    value = entry.get("value", "")
    if value is None:
        value = ""
    elif isinstance(value, (list, dict)):
        value = json.dumps(value, ensure_ascii=False)
    elif isinstance(value, bool) or not isinstance(value, (int, float, str)):
        value = str(value)

    hints = {name: _str_or_none(entry.get(name)) for name in _FIELD_HINT_KEYS}
    is_relative = entry.get("isRelative")

    try:
        return PassField(
            key=key,
            label=_str_or_none(entry.get("label")),
            value=value,
            is_relative=is_relative if isinstance(is_relative, bool) else None,
            **hints,
        )
    except ValidationError:
        return None


def _parse_barcode(entry: Any) -> PassBarcode | None:
    if not isinstance(entry, dict):
        return None
    message = entry.get("message")
    if message is None:
        return None
    kwargs: dict[str, Any] = {"message": str(message)}
    fmt = _str_or_none(entry.get("format"))
    if fmt:
        kwargs["format"] = fmt
    alt_text = _str_or_none(entry.get("altText"))
    if alt_text:
        kwargs["alt_text"] = alt_text
    encoding = _str_or_none(entry.get("messageEncoding"))
    if encoding:
        kwargs["message_encoding"] = encoding
    return PassBarcode(**kwargs)


def _str_or_none(val: Any) -> str | None:
    if val is None or isinstance(val, (dict, list)):
        return None
    return str(val)
