"""
Test Suite for pkpass-pdf
==========================
Tests for the archive normalizer, text formatting, layout engine, diagnostics
and CLI. End-to-end scenarios render real PDFs and inspect them with pikepdf.
"""

from __future__ import annotations

import dataclasses
import io
import json
import logging
import time
from pathlib import Path

import pytest
from click.testing import CliRunner
from PIL import Image
from reportlab.pdfbase.pdfmetrics import stringWidth

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pkpass_pdf import (
    DEFAULT_LAYOUT,
    BarcodeEncodingError,
    BarcodeFormat,
    DateStyle,
    FormatError,
    InvalidArchiveError,
    LayoutConfig,
    MalformedManifestError,
    MissingManifestError,
    ParsedPass,
    PassArchive,
    PassArchiveBuilder,
    PassField,
    PassRenderer,
    PassStyle,
    PassValidator,
    RenderedPassReader,
    Severity,
    SinkWriteError,
    TransitType,
    parse_pkpass,
    parse_pkpass_file,
    render_pass,
)
from pkpass_pdf.cli.main import cli
from pkpass_pdf.render.barcode import encode_matrix_barcode
from pkpass_pdf.render.colors import is_valid_color, parse_rgb
from pkpass_pdf.render.formatting import (
    ELLIPSIS,
    fit_text,
    format_currency,
    format_field_value,
    format_number,
    format_style_label,
    parse_date,
    wrap_text,
)


# ===========================================================================
# Fixtures
# ===========================================================================


def png(width: int = 20, height: int = 20, color: str = "red") -> bytes:
    """Small solid-colour PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def event_ticket() -> PassArchiveBuilder:
    """Event ticket with every section filled, as in the end-to-end scenarios."""
    return (
        PassArchiveBuilder.event_ticket()
        .organization("Test Events Inc.")
        .describe("Concert Ticket - Rock Festival 2024")
        .serial("TEST-001-2024")
        .colors(foreground="rgb(255, 255, 255)", background="rgb(60, 65, 76)", label="rgb(180, 180, 180)")
        .field("header", "date", "2024-07-15T19:00:00Z", label="DATE", date_style="PKDateStyleMedium")
        .field("primary", "event", "Rock Festival 2024", label="EVENT")
        .field("secondary", "location", "Central Park", label="LOCATION")
        .field("secondary", "doors", "6:00 PM", label="DOORS")
        .field("auxiliary", "seat", "GA", label="SEAT")
        .field("auxiliary", "section", "Floor", label="SECTION")
        .field("auxiliary", "price", 89.5, label="PRICE", currency_code="USD")
        .field("back", "terms", "No refunds. Ticket valid for one entry only.", label="Terms")
        .field("back", "contact", "support@example.com", label="Contact")
        .barcode("https://example.com/ticket/TEST-001-2024", alt_text="TEST-001-2024")
        .image("icon", png(29, 29, "blue"))
        .image("thumbnail", png(90, 90, "green"))
    )


@pytest.fixture
def event_archive() -> bytes:
    return event_ticket().build()


@pytest.fixture
def event_pass(event_archive: bytes) -> ParsedPass:
    return parse_pkpass(event_archive)


def render_to_reader(pass_: ParsedPass, tmp_path: Path, name: str = "out.pdf") -> RenderedPassReader:
    output = tmp_path / name
    render_pass(pass_, output)
    return RenderedPassReader(output)


# ===========================================================================
# Archive normalizer
# ===========================================================================


class TestNormalizer:
    """Tests for pass.json and asset normalization."""

    def test_event_ticket_fields(self, event_pass: ParsedPass) -> None:
        assert event_pass.style == PassStyle.EVENT_TICKET
        assert event_pass.organization_name == "Test Events Inc."
        assert event_pass.description == "Concert Ticket - Rock Festival 2024"
        assert [f.key for f in event_pass.header_fields] == ["date"]
        assert [f.key for f in event_pass.primary_fields] == ["event"]
        assert [f.key for f in event_pass.secondary_fields] == ["location", "doors"]
        assert [f.key for f in event_pass.auxiliary_fields] == ["seat", "section", "price"]
        assert [f.key for f in event_pass.back_fields] == ["terms", "contact"]
        assert event_pass.serial_number == "TEST-001-2024"

    def test_field_hints_preserved(self, event_pass: ParsedPass) -> None:
        price = event_pass.auxiliary_fields[2]
        assert price.value == 89.5
        assert price.is_numeric
        assert price.currency_code == "USD"
        assert event_pass.header_fields[0].date_style == DateStyle.MEDIUM.value

    def test_no_style_defaults_to_generic(self) -> None:
        pass_ = parse_pkpass(PassArchiveBuilder.without_style().build())
        assert pass_.style == PassStyle.GENERIC
        assert pass_.field_count() == 0
        assert pass_.primary_fields == ()

    def test_style_priority(self) -> None:
        data = (
            PassArchiveBuilder.event_ticket()
            .field("primary", "event", "Show")
            .manifest_entry("coupon", {"primaryFields": [{"key": "offer", "value": "10% off"}]})
            .build()
        )
        pass_ = parse_pkpass(data)
        assert pass_.style == PassStyle.COUPON
        assert [f.key for f in pass_.primary_fields] == ["offer"]

    def test_modern_barcode_wins_over_legacy(self) -> None:
        data = (
            PassArchiveBuilder.generic()
            .legacy_barcode("legacy", format=BarcodeFormat.PDF417)
            .barcode("first", format=BarcodeFormat.AZTEC)
            .barcode("second")
            .build()
        )
        barcode = parse_pkpass(data).barcode
        assert barcode is not None
        assert barcode.message == "first"
        assert barcode.format == BarcodeFormat.AZTEC.value

    def test_empty_barcode_list_falls_back_to_legacy(self) -> None:
        data = (
            PassArchiveBuilder.generic()
            .manifest_entry("barcodes", [])
            .legacy_barcode("legacy", alt_text="ALT")
            .build()
        )
        barcode = parse_pkpass(data).barcode
        assert barcode is not None
        assert barcode.message == "legacy"
        assert barcode.alt_text == "ALT"

    @pytest.mark.parametrize("first", [None, "QR", {"format": "PKBarcodeFormatQR"}])
    def test_unusable_first_barcode_falls_back_to_legacy(self, first: object) -> None:
        data = (
            PassArchiveBuilder.generic()
            .manifest_entry("barcodes", [first])
            .legacy_barcode("legacy")
            .build()
        )
        barcode = parse_pkpass(data).barcode
        assert barcode is not None
        assert barcode.message == "legacy"

    def test_barcode_format_names(self) -> None:
        assert BarcodeFormat.PDF417.display_name == "PDF417"
        assert BarcodeFormat.CODE128.display_name == "Code128"

    def test_no_barcode(self) -> None:
        assert parse_pkpass(PassArchiveBuilder.generic().build()).barcode is None

    @pytest.mark.parametrize("role", ["logo", "icon", "strip", "background", "thumbnail", "footer"])
    def test_image_resolution_priority(self, role: str) -> None:
        base, x2, x3 = png(10, 10, "red"), png(20, 20, "green"), png(30, 30, "blue")

        two = PassArchiveBuilder.generic().image(role, base).image(role, x2, scale=2).build()
        assert parse_pkpass(two).images.get(role) == x2

        three = (
            PassArchiveBuilder.generic()
            .image(role, base)
            .image(role, x2, scale=2)
            .image(role, x3, scale=3)
            .build()
        )
        assert parse_pkpass(three).images.get(role) == x3

    def test_image_payloads_are_not_decoded(self) -> None:
        pass_ = parse_pkpass(PassArchiveBuilder.generic().image("logo", b"not a png").build())
        assert pass_.images.logo == b"not a png"
        assert pass_.images.present_roles() == ["logo"]

    def test_unknown_image_role(self, event_pass: ParsedPass) -> None:
        with pytest.raises(KeyError):
            event_pass.images.get("banner")

    def test_parse_is_idempotent(self, event_archive: bytes) -> None:
        assert parse_pkpass(event_archive) == parse_pkpass(event_archive)

    def test_malformed_field_entries_skipped(self) -> None:
        data = (
            PassArchiveBuilder.generic()
            .manifest_entry("generic", {
                "primaryFields": [
                    {"key": "ok", "value": "kept"},
                    {"value": "no key"},
                    "not an object",
                    {"key": "empty", "value": None},
                    {"key": "list", "value": [1, 2]},
                ],
                "secondaryFields": "not a list",
            })
            .build()
        )
        pass_ = parse_pkpass(data)
        assert [(f.key, f.value) for f in pass_.primary_fields] == [
            ("ok", "kept"),
            ("empty", ""),
            ("list", "[1, 2]"),
        ]
        assert pass_.secondary_fields == ()

    def test_transit_type_on_boarding_pass(self) -> None:
        pass_ = parse_pkpass(PassArchiveBuilder.boarding_pass(TransitType.TRAIN).build())
        assert pass_.style == PassStyle.BOARDING_PASS
        assert pass_.transit_type == TransitType.TRAIN.value

    def test_transit_type_ignored_on_other_styles(self) -> None:
        pass_ = parse_pkpass(PassArchiveBuilder.coupon().transit(TransitType.AIR).build())
        assert pass_.transit_type is None

    def test_transit_type_rejected_by_model(self) -> None:
        with pytest.raises(ValueError):
            ParsedPass(style=PassStyle.COUPON, transit_type=TransitType.AIR.value)

    def test_missing_manifest(self) -> None:
        data = PassArchiveBuilder.generic().omit_manifest().file("icon.png", png()).build()
        with pytest.raises(MissingManifestError, match="pass.json not found"):
            parse_pkpass(data)

    def test_malformed_manifest(self) -> None:
        data = PassArchiveBuilder.generic().raw_manifest(b"{not json").build()
        with pytest.raises(MalformedManifestError):
            parse_pkpass(data)

    def test_manifest_must_be_object(self) -> None:
        data = PassArchiveBuilder.generic().raw_manifest(b"[1, 2, 3]").build()
        with pytest.raises(MalformedManifestError):
            parse_pkpass(data)

    def test_manifest_with_bom(self) -> None:
        payload = "\ufeff" + json.dumps({"description": "BOM", "generic": {}})
        pass_ = parse_pkpass(PassArchiveBuilder.generic().raw_manifest(payload.encode("utf-8")).build())
        assert pass_.description == "BOM"

    @pytest.mark.skipif(not hasattr(sys, "get_int_max_str_digits"), reason="no integer digit limit")
    def test_integer_over_digit_limit(self) -> None:
        payload = b'{"serialNumber": ' + b"9" * 5000 + b"}"
        with pytest.raises(MalformedManifestError):
            parse_pkpass(PassArchiveBuilder.generic().raw_manifest(payload).build())

    def test_not_a_zip(self) -> None:
        with pytest.raises(InvalidArchiveError):
            parse_pkpass(b"this is not a zip file")

    def test_format_errors_share_base(self) -> None:
        for exc in (InvalidArchiveError, MissingManifestError, MalformedManifestError):
            assert issubclass(exc, FormatError)

    def test_parse_file_and_archive_names(self, tmp_path: Path) -> None:
        path = event_ticket().write(tmp_path / "ticket.pkpass")
        assert parse_pkpass_file(path).style == PassStyle.EVENT_TICKET
        with PassArchive(path) as archive:
            assert "pass.json" in archive.names()
            assert archive.has_entry("thumbnail.png")
            assert not archive.has_entry("logo.png")


# ===========================================================================
# Formatting
# ===========================================================================


class TestFormatting:
    """Tests for field value, date and label formatting."""

    def test_currency(self) -> None:
        assert format_currency(1234.5, "USD") == "$1,234.50"
        assert format_currency(1200, "JPY") == "¥1,200"
        assert format_currency(10, "CHF") == "CHF 10.00"
        assert format_currency(-5, "EUR") == "-€5.00"

    def test_numbers(self) -> None:
        assert format_number(42) == "42"
        assert format_number(3.0) == "3"
        assert format_number(2.5) == "2.5"
        assert format_number(0.25, "PKNumberStylePercent") == "25%"
        assert format_number(1500, "PKNumberStyleScientific") == "1.5E3"
        assert format_number(7, "PKNumberStyleSpellOut") == "7"

    def test_huge_integers(self) -> None:
        huge = int("9" * 400)
        amount = format_currency(huge, "USD")
        assert amount.startswith("$9,999")
        assert amount.endswith(".00")
        assert format_number(huge, "PKNumberStylePercent").endswith("00%")
        assert format_number(huge, "PKNumberStyleScientific") == "1E400"

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_numbers_render_raw(self, value: float) -> None:
        assert format_number(value, "PKNumberStyleScientific") == str(value)
        assert format_number(value, "PKNumberStylePercent") == str(value)
        assert format_currency(value, "USD") == str(value)

    def test_date_styles(self) -> None:
        field = PassField(key="d", value="2024-06-15T19:00:00Z", date_style="PKDateStyleMedium")
        assert format_field_value(field) == "Jun 15, 2024"

        field = PassField(
            key="d", value="2024-06-15T19:00:00Z",
            date_style="PKDateStyleShort", time_style="PKDateStyleShort",
        )
        assert format_field_value(field) == "6/15/24, 7:00 PM"

        field = PassField(
            key="d", value="2024-06-15T19:00:00Z",
            date_style="PKDateStyleLong", time_style="PKDateStyleLong",
        )
        assert format_field_value(field) == "June 15, 2024 at 7:00:00 PM UTC"

    def test_full_date_with_offset(self) -> None:
        field = PassField(
            key="d", value="2024-06-15T09:05:00+02:00",
            date_style="PKDateStyleFull", time_style="PKDateStyleFull",
        )
        assert format_field_value(field) == "Saturday, June 15, 2024 at 9:05:00 AM GMT+2"

    def test_unparseable_date_renders_raw(self) -> None:
        field = PassField(key="d", value="sometime soon", date_style="PKDateStyleMedium")
        assert format_field_value(field) == "sometime soon"

    def test_date_without_style_is_raw(self) -> None:
        field = PassField(key="d", value="2024-06-15T19:00:00Z")
        assert format_field_value(field) == "2024-06-15T19:00:00Z"

    def test_parse_date_requires_a_date(self) -> None:
        assert parse_date("2024-06-15") is not None
        assert parse_date("19:00") is None
        assert parse_date("not-a-date") is None
        assert parse_date("") is None
        assert parse_date(None) is None

    def test_style_labels(self) -> None:
        assert format_style_label(PassStyle.EVENT_TICKET) == "Event Ticket"
        assert format_style_label(PassStyle.GENERIC) == "Pass"
        assert format_style_label(PassStyle.BOARDING_PASS, TransitType.AIR.value) == "Flight"
        assert format_style_label(PassStyle.BOARDING_PASS, "PKTransitTypeRocket") == "Boarding Pass"
        assert format_style_label(PassStyle.BOARDING_PASS) == "Boarding Pass"

    def test_fit_text(self) -> None:
        assert fit_text("short", "Helvetica", 10, 200) == "short"
        fitted = fit_text("a rather long value that cannot fit", "Helvetica", 10, 60)
        assert fitted.endswith(ELLIPSIS)
        assert len(fitted) < len("a rather long value that cannot fit")

    def test_fit_text_keeps_longest_prefix(self) -> None:
        text = "a rather long value that cannot fit"
        fitted = fit_text(text, "Helvetica", 10, 60)
        prefix = fitted[: -len(ELLIPSIS)]
        assert text.startswith(prefix)
        assert stringWidth(fitted, "Helvetica", 10) <= 60
        longer = text[: len(prefix) + 1] + ELLIPSIS
        assert stringWidth(longer, "Helvetica", 10) > 60

    def test_fit_text_very_long_value(self) -> None:
        started = time.perf_counter()
        fitted = fit_text("x" * 20000, "Helvetica-Bold", 16, 160)
        assert time.perf_counter() - started < 1.0
        assert fitted.endswith(ELLIPSIS)
        assert stringWidth(fitted, "Helvetica-Bold", 16) <= 160

    def test_fit_text_nothing_fits(self) -> None:
        assert fit_text("wide", "Helvetica", 10, 1) == ""

    def test_wrap_text(self) -> None:
        lines = wrap_text("word " * 100, "Helvetica", 9, 340)
        assert len(lines) > 1
        assert wrap_text("", "Helvetica", 9, 340) == []


class TestColors:
    """Tests for the rgb()/hex colour grammar."""

    def test_rgb(self) -> None:
        assert parse_rgb("rgb(255, 0, 0)") == (1.0, 0.0, 0.0)
        assert parse_rgb("rgb(0,0,0)") == (0.0, 0.0, 0.0)

    def test_hex(self) -> None:
        assert parse_rgb("#fff") == (1.0, 1.0, 1.0)
        assert parse_rgb("#00ff00") == (0.0, 1.0, 0.0)
        assert parse_rgb("0000ff") == (0.0, 0.0, 1.0)

    @pytest.mark.parametrize("value", ["not-a-color", "rgb(300, 0, 0)", "rgb(1, 2)", "#12345", "", None])
    def test_invalid(self, value: str | None) -> None:
        assert parse_rgb(value) is None
        assert not is_valid_color(value)


class TestBarcode:
    """Tests for QR symbol generation."""

    def test_symbol_size(self) -> None:
        drawing = encode_matrix_barcode("https://example.com/ticket/1", 120)
        assert drawing.width == 120
        assert drawing.height == 120

    def test_oversized_message(self) -> None:
        with pytest.raises(BarcodeEncodingError):
            encode_matrix_barcode("x" * 8000)


# ===========================================================================
# Layout engine
# ===========================================================================


class TestRenderer:
    """End-to-end rendering scenarios."""

    def test_scenario_single_page(self, event_pass: ParsedPass, tmp_path: Path) -> None:
        with render_to_reader(event_pass, tmp_path) as reader:
            assert reader.page_count == 1
            assert reader.page_size(1) == (400.0, 700.0)
            texts = reader.page_texts(1)
            assert "Serial: TEST-001-2024" in texts
            assert "QR" in texts
            assert "TEST-001-2024" in texts
            assert "Additional Information" in texts
            assert "Event Ticket" in texts
            assert "EVENT" in texts
            assert "$89.50" in texts
            assert "Jul 15, 2024" in texts
            assert reader.image_count(1) >= 1

    def test_scenario_back_page(self, tmp_path: Path) -> None:
        long_text = " ".join(f"Clause {n} applies to every ticket holder." for n in range(40))
        data = (
            event_ticket()
            .image("strip", png(340, 120, "orange"))
            .field("back", "policy", long_text, label="Policy")
            .build()
        )
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            assert reader.page_count == 2
            assert reader.page_texts(2)[0] == "Additional Information"
            assert not reader.contains_text("Additional Information", page=1)
            assert reader.contains_text("Serial: TEST-001-2024", page=1)

    def test_scenario_no_barcode(self, tmp_path: Path) -> None:
        data = PassArchiveBuilder.generic().describe("Membership").field("primary", "name", "Jane").build()
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            assert reader.page_count == 1
            texts = reader.page_texts(1)
            assert "QR" not in texts
            assert "Membership" in texts

    def test_scenario_invalid_background(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        data = event_ticket().colors(background="not-a-color").build()
        with caplog.at_level(logging.WARNING, logger="pkpass_pdf"):
            with render_to_reader(parse_pkpass(data), tmp_path) as reader:
                assert reader.page_count == 1
                assert reader.fill_colors(1)[0] == DEFAULT_LAYOUT.default_background
        assert "not-a-color" in caplog.text

    def test_custom_background(self, event_pass: ParsedPass, tmp_path: Path) -> None:
        with render_to_reader(event_pass, tmp_path) as reader:
            assert reader.fill_colors(1)[0] == (round(60 / 255, 3), round(65 / 255, 3), round(76 / 255, 3))

    def test_metadata(self, event_pass: ParsedPass, tmp_path: Path) -> None:
        with render_to_reader(event_pass, tmp_path) as reader:
            info = reader.metadata()
        assert info["Title"] == "Concert Ticket - Rock Festival 2024"
        assert info["Author"] == "Test Events Inc."
        assert info["Subject"] == "Event Ticket"
        assert info["Producer"].startswith("pkpass-pdf")

    def test_render_to_stream(self, event_pass: ParsedPass) -> None:
        buffer = io.BytesIO()
        PassRenderer().render(event_pass, buffer)
        assert buffer.getvalue().startswith(b"%PDF")

    def test_render_is_deterministic(self, event_pass: ParsedPass) -> None:
        first, second = io.BytesIO(), io.BytesIO()
        render_pass(event_pass, first)
        render_pass(event_pass, second)
        assert first.getvalue() == second.getvalue()

    def test_unparseable_date_field_is_drawn(self, tmp_path: Path) -> None:
        data = (
            PassArchiveBuilder.event_ticket()
            .field("primary", "when", "sometime soon", label="WHEN", date_style="PKDateStyleShort")
            .build()
        )
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            assert "sometime soon" in reader.page_texts(1)

    def test_undecodable_logo_falls_back_to_text(self, tmp_path: Path) -> None:
        data = (
            PassArchiveBuilder.generic()
            .organization("Broken Logo Ltd")
            .image("logo", b"not a png")
            .image("strip", b"also not a png")
            .build()
        )
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            assert "Broken Logo Ltd" in reader.page_texts(1)
            assert reader.image_count(1) == 0

    def test_logo_text_beside_logo(self, tmp_path: Path) -> None:
        data = (
            PassArchiveBuilder.generic()
            .organization("Org Name")
            .logo_text("Logo Text")
            .image("logo", png(60, 30))
            .build()
        )
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            texts = reader.page_texts(1)
            assert "Logo Text" in texts
            assert "Org Name" not in texts
            assert reader.image_count(1) == 1

    def test_inline_back_fields_capped(self, tmp_path: Path) -> None:
        words = " ".join(f"word{n}" for n in range(200))
        data = PassArchiveBuilder.generic().field("back", "long", words, label="Long").build()
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            assert reader.page_count == 1
            texts = reader.page_texts(1)
            assert any("word0" in t for t in texts)
            assert not any("word199" in t for t in texts)

    def test_long_title_wraps(self, tmp_path: Path) -> None:
        title = "A very long description that will certainly not fit on a single line of the page"
        data = PassArchiveBuilder.generic().describe(title).build()
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            texts = reader.page_texts(1)
        title_lines = [t for t in texts if t and t in title]
        assert len(title_lines) > 1
        assert " ".join(title_lines) == title

    def test_footer_date_and_serial(self, tmp_path: Path) -> None:
        data = PassArchiveBuilder.generic().serial("ABC-1").relevant_date("2024-06-15T19:00:00Z").build()
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            texts = reader.page_texts(1)
            assert "Serial: ABC-1" in texts
            assert "Date: Jun 15, 2024" in texts

    def test_footer_without_serial(self, tmp_path: Path) -> None:
        data = PassArchiveBuilder.generic().manifest_entry("serialNumber", None).build()
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            assert not reader.contains_text("Serial:")

    def test_boarding_pass_label(self, tmp_path: Path) -> None:
        data = PassArchiveBuilder.boarding_pass(TransitType.AIR).field("primary", "from", "SFO").build()
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            assert "Flight" in reader.page_texts(1)

    def test_unknown_barcode_format_label(self, tmp_path: Path) -> None:
        data = PassArchiveBuilder.generic().barcode("123", format="PKBarcodeFormatCustom").build()
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            assert "Custom" in reader.page_texts(1)

    def test_sink_write_error(self, event_pass: ParsedPass, tmp_path: Path) -> None:
        target = tmp_path / "missing-dir" / "out.pdf"
        with pytest.raises(SinkWriteError) as excinfo:
            render_pass(event_pass, target)
        assert isinstance(excinfo.value.__cause__, OSError)
        assert not target.exists()

    def test_custom_page_size(self, event_pass: ParsedPass) -> None:
        config = dataclasses.replace(DEFAULT_LAYOUT, page_width=500.0, page_height=800.0)
        buffer = io.BytesIO()
        render_pass(event_pass, buffer, config)
        buffer.seek(0)
        with RenderedPassReader(buffer) as reader:
            assert reader.page_size(1) == (500.0, 800.0)

    def test_closed_stream_raises_sink_error(self, event_pass: ParsedPass) -> None:
        buffer = io.BytesIO()
        buffer.close()
        with pytest.raises(SinkWriteError):
            PassRenderer().render(event_pass, buffer)

    def test_footer_date_right_aligned(self, tmp_path: Path) -> None:
        data = PassArchiveBuilder.generic().relevant_date("2024-12-25T10:00:00Z").build()
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            placed = {text: (x, y) for text, x, y in reader.text_positions(1)}
        text = "Date: Dec 25, 2024"
        x, y = placed[text]
        right_edge = DEFAULT_LAYOUT.page_width - DEFAULT_LAYOUT.margin
        assert x + stringWidth(text, "Helvetica", DEFAULT_LAYOUT.footer_size) == pytest.approx(right_edge, abs=0.01)
        assert y == pytest.approx(DEFAULT_LAYOUT.footer_y)

    def test_tall_strip_is_clipped_not_squashed(self, tmp_path: Path) -> None:
        data = PassArchiveBuilder.generic().image("strip", png(340, 400, "orange")).build()
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            placements = reader.image_placements(1)
            placed = {text: (x, y) for text, x, y in reader.text_positions(1)}
        cfg = DEFAULT_LAYOUT
        assert len(placements) == 1
        _, _, width, height = placements[0]
        assert width == pytest.approx(cfg.content_width)
        assert height == pytest.approx(400.0)
        strip_top = cfg.top - cfg.header_band
        _, title_y = placed["Example Pass"]
        assert title_y == pytest.approx(strip_top - cfg.strip_max_height - cfg.strip_gap)

    def test_back_page_stops_at_bottom_margin(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        builder = event_ticket().image("strip", png(340, 120, "orange"))
        for n in range(80):
            builder.field("back", f"item{n}", f"Value {n}", label=f"Item {n}")
        with caplog.at_level(logging.WARNING, logger="pkpass_pdf"):
            with render_to_reader(parse_pkpass(builder.build()), tmp_path) as reader:
                assert reader.page_count == 2
                placed = reader.text_positions(2)
        assert placed[0][0] == "Additional Information"
        assert all(y >= DEFAULT_LAYOUT.bottom_threshold for _, _, y in placed)
        texts = [text for text, _, _ in placed]
        assert "Item 0" in texts
        assert "Item 79" not in texts
        assert "Omitting" in caplog.text

    def test_grid_columns_and_rows(self, tmp_path: Path) -> None:
        builder = PassArchiveBuilder.generic()
        for n in range(1, 5):
            builder.field("secondary", f"f{n}", f"v{n}", label=f"L{n}")
        with render_to_reader(parse_pkpass(builder.build()), tmp_path) as reader:
            placed = {text: (x, y) for text, x, y in reader.text_positions(1)}
        cfg = DEFAULT_LAYOUT
        label_size, value_size = cfg.secondary_field_sizes
        column_width = cfg.content_width / cfg.secondary_columns
        assert placed["L1"][0] == pytest.approx(cfg.margin, abs=0.01)
        assert placed["L2"][0] == pytest.approx(cfg.margin + column_width, abs=0.01)
        assert placed["L3"][0] == pytest.approx(cfg.margin + 2 * column_width, abs=0.01)
        assert placed["L2"][1] == pytest.approx(placed["L1"][1], abs=0.01)
        assert placed["L4"][0] == pytest.approx(placed["L1"][0], abs=0.01)
        row_advance = label_size + cfg.label_value_gap + value_size + cfg.row_padding
        assert placed["L1"][1] - placed["L4"][1] == pytest.approx(row_advance, abs=0.01)

    def test_huge_and_non_finite_values_render(self, tmp_path: Path) -> None:
        manifest = PassArchiveBuilder.generic().manifest()
        manifest["generic"] = {
            "primaryFields": [{"key": "total", "value": int("9" * 400), "currencyCode": "USD"}],
            "secondaryFields": [
                {"key": "ratio", "value": float("nan"), "numberStyle": "PKNumberStyleScientific"},
                {"key": "cap", "value": float("inf"), "currencyCode": "EUR"},
            ],
        }
        data = PassArchiveBuilder.generic().raw_manifest(json.dumps(manifest).encode()).build()
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            texts = reader.page_texts(1)
        assert any(t.startswith("$9,999") and t.endswith(ELLIPSIS) for t in texts)
        assert "nan" in texts
        assert "inf" in texts

    def test_very_long_value_renders_quickly(self, tmp_path: Path) -> None:
        data = PassArchiveBuilder.generic().field("primary", "a", "x" * 20000).build()
        started = time.perf_counter()
        with render_to_reader(parse_pkpass(data), tmp_path) as reader:
            texts = reader.page_texts(1)
        assert time.perf_counter() - started < 5.0
        assert any(t.startswith("x") and t.endswith(ELLIPSIS) for t in texts)


class TestLayoutConfig:
    """Tests for layout configuration."""

    def test_defaults(self) -> None:
        assert DEFAULT_LAYOUT.content_width == 340.0
        assert DEFAULT_LAYOUT.top == 670.0
        assert DEFAULT_LAYOUT.page_break_threshold == 150.0
        assert DEFAULT_LAYOUT.inline_max_lines == 3

    def test_invalid_dimensions(self) -> None:
        with pytest.raises(ValueError):
            LayoutConfig(page_width=0)
        with pytest.raises(ValueError):
            LayoutConfig(margin=250)


# ===========================================================================
# Diagnostics
# ===========================================================================


class TestValidator:
    """Tests for manifest diagnostics (PK-001 … PK-010)."""

    def rule_ids(self, data: bytes) -> set[str]:
        return {i.rule_id for i in PassValidator().validate(parse_pkpass(data)).issues}

    def test_clean_pass(self, event_pass: ParsedPass) -> None:
        result = PassValidator().validate(event_pass)
        assert result.passed
        assert result.issues == []
        assert result.rule_count == 10
        assert result.pass_type == "Event Ticket"

    def test_multiple_styles(self) -> None:
        data = PassArchiveBuilder.event_ticket().manifest_entry("coupon", {}).build()
        assert "PK-001" in self.rule_ids(data)

    def test_duplicate_keys(self) -> None:
        data = PassArchiveBuilder.generic().field("primary", "a", "1").field("primary", "a", "2").build()
        assert "PK-002" in self.rule_ids(data)

    def test_bad_color(self) -> None:
        data = PassArchiveBuilder.generic().colors(background="not-a-color").build()
        assert "PK-003" in self.rule_ids(data)

    def test_barcode_rules(self) -> None:
        assert "PK-005" in self.rule_ids(PassArchiveBuilder.generic().build())
        unknown = PassArchiveBuilder.generic().barcode("1", format="PKBarcodeFormatCustom").build()
        assert "PK-004" in self.rule_ids(unknown)

    def test_bad_date_field(self) -> None:
        data = PassArchiveBuilder.generic().field("primary", "d", "soon", date_style="PKDateStyleShort").build()
        assert "PK-006" in self.rule_ids(data)

    def test_boarding_pass_without_transit(self) -> None:
        data = PassArchiveBuilder.boarding_pass("PKTransitTypeRocket").build()
        assert "PK-007" in self.rule_ids(data)

    def test_missing_required_key(self) -> None:
        data = PassArchiveBuilder.generic().raw_manifest(json.dumps({"generic": {}}).encode()).build()
        result = PassValidator().validate(parse_pkpass(data))
        assert not result.passed
        assert {i.field for i in result.errors} >= {"teamIdentifier", "passTypeIdentifier"}
        assert all(i.severity == Severity.ERROR for i in result.errors)

    def test_voided_and_dates(self) -> None:
        data = (
            PassArchiveBuilder.generic()
            .manifest_entry("voided", True)
            .expiration_date("not-a-date")
            .build()
        )
        assert {"PK-009", "PK-010"} <= self.rule_ids(data)


# ===========================================================================
# Builder
# ===========================================================================


class TestBuilder:
    """Tests for the fixture archive builder."""

    def test_manifest_layout(self) -> None:
        manifest = (
            PassArchiveBuilder.store_card()
            .field("secondary", "points", 120, label="POINTS", number_style="PKNumberStyleDecimal")
            .manifest()
        )
        assert manifest["formatVersion"] == 1
        assert manifest["storeCard"]["secondaryFields"] == [
            {"key": "points", "value": 120, "label": "POINTS", "numberStyle": "PKNumberStyleDecimal"}
        ]

    def test_style_switch(self) -> None:
        manifest = PassArchiveBuilder.generic().style(PassStyle.COUPON).field("primary", "a", "b").manifest()
        assert "coupon" in manifest
        assert "generic" not in manifest

    def test_rejects_unknown_section_and_role(self) -> None:
        with pytest.raises(ValueError):
            PassArchiveBuilder.generic().field("front", "a", "b")
        with pytest.raises(ValueError):
            PassArchiveBuilder.generic().image("banner", b"")
        with pytest.raises(ValueError):
            PassArchiveBuilder.generic().image("logo", b"", scale=4)


# ===========================================================================
# CLI
# ===========================================================================


class TestCli:
    """Tests for the pkpass-pdf command line."""

    @pytest.fixture
    def runner(self) -> CliRunner:
        return CliRunner()

    def test_convert(self, runner: CliRunner, tmp_path: Path) -> None:
        source = event_ticket().write(tmp_path / "ticket.pkpass")
        result = runner.invoke(cli, ["convert", str(source)])
        assert result.exit_code == 0, result.output
        output = tmp_path / "ticket.pdf"
        assert output.exists()
        assert "Event Ticket" in result.output

    def test_convert_with_output_option(self, runner: CliRunner, tmp_path: Path) -> None:
        source = event_ticket().write(tmp_path / "ticket.pkpass")
        target = tmp_path / "custom.pdf"
        result = runner.invoke(cli, ["-v", "convert", str(source), "-o", str(target)])
        assert result.exit_code == 0, result.output
        assert target.exists()
        assert not (tmp_path / "ticket.pdf").exists()

    def test_convert_prompts_for_input(self, runner: CliRunner, tmp_path: Path) -> None:
        source = event_ticket().write(tmp_path / "ticket.pkpass")
        result = runner.invoke(cli, ["convert"], input=f"{tmp_path / 'ticket.txt'}\n{source}\n")
        assert result.exit_code == 0, result.output
        assert "must have .pkpass extension" in result.output
        assert (tmp_path / "ticket.pdf").exists()

    def test_missing_manifest_exit_code(self, runner: CliRunner, tmp_path: Path) -> None:
        source = PassArchiveBuilder.generic().omit_manifest().write(tmp_path / "broken.pkpass")
        result = runner.invoke(cli, ["convert", str(source)])
        assert result.exit_code == 1
        assert not (tmp_path / "broken.pdf").exists()

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["convert", str(tmp_path / "nope.pkpass")])
        assert result.exit_code == 1

    def test_wrong_extension(self, runner: CliRunner, tmp_path: Path) -> None:
        source = event_ticket().write(tmp_path / "ticket.zip")
        result = runner.invoke(cli, ["convert", str(source)])
        assert result.exit_code == 1
        assert not (tmp_path / "ticket.pdf").exists()

    def test_strict_refuses_errors(self, runner: CliRunner, tmp_path: Path) -> None:
        source = (
            PassArchiveBuilder.generic()
            .raw_manifest(json.dumps({"generic": {}}).encode())
            .write(tmp_path / "bare.pkpass")
        )
        result = runner.invoke(cli, ["convert", str(source), "--strict"])
        assert result.exit_code == 1
        assert "PK-008" in result.output
        assert not (tmp_path / "bare.pdf").exists()

        result = runner.invoke(cli, ["convert", str(source)])
        assert result.exit_code == 0
        assert (tmp_path / "bare.pdf").exists()

    def test_inspect_json(self, runner: CliRunner, tmp_path: Path) -> None:
        source = event_ticket().write(tmp_path / "ticket.pkpass")
        result = runner.invoke(cli, ["inspect", str(source), "--format", "json"])
        assert result.exit_code == 0
        output = json.loads(result.stdout)
        assert output["pass"]["style"] == "eventTicket"
        assert output["images"] == ["icon", "thumbnail"]
        assert "pass.json" in output["entries"]
        assert output["diagnostics"]["passed"] is True

    def test_inspect_rich(self, runner: CliRunner, tmp_path: Path) -> None:
        source = event_ticket().write(tmp_path / "ticket.pkpass")
        result = runner.invoke(cli, ["inspect", str(source)])
        assert result.exit_code == 0
        assert "Rock Festival 2024" in result.output

    def test_bracketed_manifest_text(self, runner: CliRunner, tmp_path: Path) -> None:
        source = (
            PassArchiveBuilder.generic()
            .organization("[bold")
            .describe("Gate [/] B")
            .field("primary", "[red]", "[/red] open", label="[link=x]")
            .barcode("[/]", format="[PKBarcodeFormat")
            .write(tmp_path / "brackets.pkpass")
        )
        result = runner.invoke(cli, ["convert", str(source)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "brackets.pdf").exists()
        assert "Gate [/] B" in result.output

        result = runner.invoke(cli, ["inspect", str(source)])
        assert result.exit_code == 0, result.output
        assert "Gate [/] B" in result.output

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "pkpass-pdf" in result.output
        assert runner.invoke(cli, ["--version"]).exit_code == 0
