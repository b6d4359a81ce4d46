"""
Pass Model
===========
Canonical in-memory representation of a wallet pass (``.pkpass``).

The ``pass.json`` manifest is loosely typed: most keys are optional, field
values can be numbers or strings, and formatting hints are free-form strings.
The models below hold the normalized form produced by
:mod:`pkpass_pdf.pkpass.reader`. Every model is frozen; a ``ParsedPass`` is
built once and never mutated.

Manifest keys are camelCase; each model accepts both the manifest alias and
the Python field name.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class PassStyle(str, Enum):
    """The five pass styles. Exactly one is active on a parsed pass."""
    BOARDING_PASS = "boardingPass"
    COUPON = "coupon"
    EVENT_TICKET = "eventTicket"
    GENERIC = "generic"
    STORE_CARD = "storeCard"


# Detection order: the first style key found on the manifest root wins.
PASS_STYLE_PRIORITY: tuple[PassStyle, ...] = (
    PassStyle.BOARDING_PASS,
    PassStyle.COUPON,
    PassStyle.EVENT_TICKET,
    PassStyle.GENERIC,
    PassStyle.STORE_CARD,
)


class TransitType(str, Enum):
    """Transit sub-type, meaningful for boarding passes only."""
    AIR = "PKTransitTypeAir"
    BOAT = "PKTransitTypeBoat"
    BUS = "PKTransitTypeBus"
    GENERIC = "PKTransitTypeGeneric"
    TRAIN = "PKTransitTypeTrain"


class BarcodeFormat(str, Enum):
    """Barcode symbologies supported by Apple Wallet."""
    QR = "PKBarcodeFormatQR"
    PDF417 = "PKBarcodeFormatPDF417"
    AZTEC = "PKBarcodeFormatAztec"
    CODE128 = "PKBarcodeFormatCode128"

    @property
    def display_name(self) -> str:
        return self.value.replace(BARCODE_FORMAT_PREFIX, "", 1)


BARCODE_FORMAT_PREFIX = "PKBarcodeFormat"


class DateStyle(str, Enum):
    """Date/time style hints for date-valued fields."""
    NONE = "PKDateStyleNone"
    SHORT = "PKDateStyleShort"
    MEDIUM = "PKDateStyleMedium"
    LONG = "PKDateStyleLong"
    FULL = "PKDateStyleFull"


class NumberStyle(str, Enum):
    """Number style hints for numeric fields without a currency code."""
    DECIMAL = "PKNumberStyleDecimal"
    PERCENT = "PKNumberStylePercent"
    SCIENTIFIC = "PKNumberStyleScientific"
    SPELL_OUT = "PKNumberStyleSpellOut"


class TextAlignment(str, Enum):
    LEFT = "PKTextAlignmentLeft"
    CENTER = "PKTextAlignmentCenter"
    RIGHT = "PKTextAlignmentRight"
    NATURAL = "PKTextAlignmentNatural"


# Semantic image roles, in the order they are looked up in the archive.
IMAGE_ROLES: tuple[str, ...] = ("logo", "icon", "strip", "background", "thumbnail", "footer")


# ---------------------------------------------------------------------------
# Field / barcode / images
# ---------------------------------------------------------------------------

class PassField(BaseModel):
    """
    A single labeled datum in one of the five field sections.

    Formatting hints are kept as the raw manifest strings; an unrecognized
    hint is not an error, it is simply ignored by the formatter.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., description="Unique within its section")
    label: str | None = Field(None, description="Caption drawn above the value")
    value: int | float | str = Field(..., description="Numeric or textual content")
    change_message: str | None = Field(None, alias="changeMessage")
    text_alignment: str | None = Field(None, alias="textAlignment")
    date_style: str | None = Field(None, alias="dateStyle")
    time_style: str | None = Field(None, alias="timeStyle")
    is_relative: bool | None = Field(None, alias="isRelative")
    currency_code: str | None = Field(None, alias="currencyCode")
    number_style: str | None = Field(None, alias="numberStyle")

    @property
    def is_numeric(self) -> bool:
        return isinstance(self.value, (int, float))


class PassBarcode(BaseModel):
    """Barcode payload selected from ``barcodes[0]`` or the legacy ``barcode`` key."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message: str = Field(..., description="Raw encoded payload")
    format: str = Field(BarcodeFormat.QR.value, description="PKBarcodeFormat* symbology")
    alt_text: str | None = Field(None, alias="altText", description="Human-readable caption")
    message_encoding: str = Field("iso-8859-1", alias="messageEncoding")

    @property
    def is_known_format(self) -> bool:
        return self.format in {f.value for f in BarcodeFormat}

    @property
    def format_label(self) -> str:
        """Format name with the fixed ``PKBarcodeFormat`` prefix removed."""
        return self.format.replace(BARCODE_FORMAT_PREFIX, "", 1)


class PassImages(BaseModel):
    """
    Best-resolution bitmap per semantic role.

    Payloads are opaque PNG bytes; nothing here decodes them.
    """
    model_config = ConfigDict(frozen=True)

    logo: bytes | None = None
    icon: bytes | None = None
    strip: bytes | None = None
    background: bytes | None = None
    thumbnail: bytes | None = None
    footer: bytes | None = None

    def get(self, role: str) -> bytes | None:
        if role not in IMAGE_ROLES:
            raise KeyError(role)
        return getattr(self, role)

    def present_roles(self) -> list[str]:
        return [role for role in IMAGE_ROLES if getattr(self, role) is not None]

    def count(self) -> int:
        return len(self.present_roles())


# ---------------------------------------------------------------------------
# ParsedPass
# ---------------------------------------------------------------------------

SECTION_NAMES: tuple[str, ...] = (
    "header_fields",
    "primary_fields",
    "secondary_fields",
    "auxiliary_fields",
    "back_fields",
)


class ParsedPass(BaseModel):
    """
    Canonical pass aggregate consumed by the layout engine.

    ``style`` is the discriminant: the transit sub-type only exists on the
    boarding-pass variant, which the validator below enforces. The five field
    sections are always present (empty tuples when the manifest omits them)
    and keep manifest order.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    style: PassStyle = Field(PassStyle.GENERIC)
    organization_name: str = Field("", alias="organizationName")
    description: str = Field("")
    logo_text: str | None = Field(None, alias="logoText")

    header_fields: tuple[PassField, ...] = Field(default=(), alias="headerFields")
    primary_fields: tuple[PassField, ...] = Field(default=(), alias="primaryFields")
    secondary_fields: tuple[PassField, ...] = Field(default=(), alias="secondaryFields")
    auxiliary_fields: tuple[PassField, ...] = Field(default=(), alias="auxiliaryFields")
    back_fields: tuple[PassField, ...] = Field(default=(), alias="backFields")

    barcode: PassBarcode | None = None
    images: PassImages = Field(default_factory=PassImages)

    foreground_color: str | None = Field(None, alias="foregroundColor")
    background_color: str | None = Field(None, alias="backgroundColor")
    label_color: str | None = Field(None, alias="labelColor")

    transit_type: str | None = Field(None, alias="transitType")
    relevant_date: str | None = Field(None, alias="relevantDate")
    expiration_date: str | None = Field(None, alias="expirationDate")
    serial_number: str | None = Field(None, alias="serialNumber")

    raw: dict[str, Any] = Field(default_factory=dict, description="Manifest as read from pass.json")

    @model_validator(mode="after")
    def validate_transit_on_boarding_pass(self) -> "ParsedPass":
        if self.transit_type is not None and self.style != PassStyle.BOARDING_PASS:
            raise ValueError("transit_type is only valid when style is boardingPass")
        return self

    def sections(self) -> Iterator[tuple[str, tuple[PassField, ...]]]:
        """Yield ``(section_name, fields)`` in render order."""
        for name in SECTION_NAMES:
            yield name, getattr(self, name)

    def field_count(self) -> int:
        return sum(len(fields) for _, fields in self.sections())

    def __repr__(self) -> str:
        return (
            f"ParsedPass(style={self.style.value!r}, organization={self.organization_name!r}, "
            f"fields={self.field_count()}, barcode={self.barcode.format if self.barcode else None!r}, "
            f"images={self.images.present_roles()})"
        )
