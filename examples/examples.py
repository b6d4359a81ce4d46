"""
Examples for pkpass-pdf
========================
Three complete examples: an event ticket, a boarding pass whose back fields
spill onto a second page, and diagnostics for a sloppy manifest.

Run:
    python examples/examples.py
"""

from __future__ import annotations

import io
import sys
import tempfile
from pathlib import Path

from PIL import Image

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pkpass_pdf import (
    PassArchiveBuilder,
    PassValidator,
    RenderedPassReader,
    TransitType,
    parse_pkpass,
    parse_pkpass_file,
    render_pass,
)


def _png(width: int, height: int, color: str) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Example 1: Event Ticket
# ---------------------------------------------------------------------------


def example_event_ticket(workdir: Path) -> None:
    """
    Example 1: A concert ticket rendered on a single page.

    Header, primary, secondary and auxiliary fields fill the front; the
    short back field fits below the QR code.
    """
    print("\n" + "="*60)
    print("Example 1: Event Ticket")
    print("="*60)

    source = (
        PassArchiveBuilder.event_ticket()
        .organization("Test Events Inc.")
        .describe("Concert Ticket - Rock Festival 2024")
        .serial("TEST-001-2024")
        .colors(foreground="rgb(255, 255, 255)", background="rgb(60, 65, 76)", label="rgb(180, 180, 180)")
        .relevant_date("2024-07-15T19:00:00-04:00")
        .field("header", "date", "2024-07-15T19:00:00-04:00", label="DATE", date_style="PKDateStyleMedium")
        .field("primary", "event", "Rock Festival 2024", label="EVENT")
        .field("secondary", "location", "Central Park", label="LOCATION")
        .field("secondary", "doors", "2024-07-15T18:00:00-04:00", label="DOORS",
               date_style="PKDateStyleNone", time_style="PKDateStyleShort")
        .field("auxiliary", "seat", "GA", label="SEAT")
        .field("auxiliary", "price", 89.5, label="PRICE", currency_code="USD")
        .field("back", "terms", "No refunds. Ticket valid for one entry only.", label="Terms")
        .barcode("https://example.com/ticket/TEST-001-2024", alt_text="TEST-001-2024")
        .image("thumbnail", _png(90, 90, "green"))
        .write(workdir / "ticket.pkpass")
    )

    pass_ = parse_pkpass_file(source)
    print(f"\n  Parsed: {pass_!r}")

    output = workdir / "ticket.pdf"
    render_pass(pass_, output)

    with RenderedPassReader(output) as reader:
        print(f"  Pages: {reader.page_count}")
        print(f"  Title: {reader.metadata().get('Title')}")
    print("  ✓ Example 1 complete")


# ---------------------------------------------------------------------------
# Example 2: Boarding Pass with a back page
# ---------------------------------------------------------------------------


def example_boarding_pass(workdir: Path) -> None:
    """
    Example 2: A boarding pass with a strip image and long back fields.

    The front leaves too little room, so the back fields move to a second
    page titled "Additional Information".
    """
    print("\n" + "="*60)
    print("Example 2: Boarding Pass")
    print("="*60)

    fare_rules = " ".join(
        f"Rule {n}: changes are permitted up to 24 hours before departure for a fee."
        for n in range(1, 15)
    )
    data = (
        PassArchiveBuilder.boarding_pass(TransitType.AIR)
        .organization("Example Air")
        .describe("Boarding Pass SFO to JFK")
        .serial("EA-1234-0007")
        .colors(background="#0b3d91", foreground="#ffffff", label="#c8d3f5")
        .field("header", "gate", "B12", label="GATE")
        .field("primary", "origin", "SFO", label="SAN FRANCISCO")
        .field("primary", "destination", "JFK", label="NEW YORK")
        .field("secondary", "passenger", "Jane Appleseed", label="PASSENGER")
        .field("secondary", "seat", "14C", label="SEAT")
        .field("auxiliary", "boarding", "2024-09-01T07:15:00-07:00", label="BOARDING",
               date_style="PKDateStyleNone", time_style="PKDateStyleShort")
        .field("back", "fare", fare_rules, label="Fare Rules")
        .field("back", "baggage", "One carry-on and one personal item.", label="Baggage")
        .barcode("M1APPLESEED/JANE EABC123 SFOJFKEA 1234 245Y014C0007 100", format="PKBarcodeFormatPDF417",
                 alt_text="EA1234")
        .image("strip", _png(340, 110, "skyblue"))
        .image("logo", _png(60, 30, "white"), scale=2)
        .build()
    )

    pass_ = parse_pkpass(data)
    output = workdir / "boarding.pdf"
    render_pass(pass_, output)

    with RenderedPassReader(output) as reader:
        print(f"\n  Pages: {reader.page_count}")
        print(f"  Page 2 heading: {reader.page_texts(2)[0] if reader.page_count > 1 else '—'}")
    print("  ✓ Example 2 complete")


# ---------------------------------------------------------------------------
# Example 3: Diagnostics
# ---------------------------------------------------------------------------


def example_diagnostics() -> None:
    """
    Example 3: A manifest the converter tolerates but the validator flags.

    Bad colour, duplicate keys, unparseable dates and a second style key all
    render fine; PassValidator reports them.
    """
    print("\n" + "="*60)
    print("Example 3: Diagnostics")
    print("="*60)

    data = (
        PassArchiveBuilder.generic()
        .organization("Corner Coffee")
        .describe("Loyalty Card")
        .colors(background="not-a-color")
        .field("primary", "points", 120, label="POINTS")
        .field("primary", "points", 125, label="POINTS")
        .field("back", "since", "last spring", label="Member since", date_style="PKDateStyleLong")
        .manifest_entry("storeCard", {})
        .expiration_date("never")
        .build()
    )

    result = PassValidator().validate(parse_pkpass(data))
    print(f"\n  {result}")
    for issue in result.issues:
        print(f"  [{issue.severity.value}] {issue.rule_id}: {issue.message}")
    print("  ✓ Example 3 complete")


# ---------------------------------------------------------------------------
# Run all examples
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    with tempfile.TemporaryDirectory() as tmp:
        workdir = Path(tmp)
        example_event_ticket(workdir)
        example_boarding_pass(workdir)
    example_diagnostics()

    print("\n" + "="*60)
    print("All examples completed successfully.")
    print("="*60 + "\n")
