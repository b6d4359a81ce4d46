"""
Pass Diagnostics
=================
Reports manifest problems that the normalizer tolerates silently.

Normalization is lenient: a pass with two style keys, an
unparseable colour or a bogus date still renders. The validator surfaces
those leniencies as issues so the CLI can show them, and ``convert --strict``
can refuse passes with errors.

Example::

    from pkpass_pdf import PassValidator

    result = PassValidator().validate(parsed_pass)
    for issue in result.issues:
        print(f"[{issue.severity.value}] {issue.rule_id}: {issue.message}")
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from ..models.pkpass import DateStyle, ParsedPass, PassStyle, TransitType
from ..pkpass.reader import present_styles
from ..render.colors import is_valid_color
from ..render.formatting import format_style_label, parse_date


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


@dataclass
class ValidationIssue:
    rule_id: str
    severity: Severity
    message: str
    field: str | None = None


@dataclass
class ValidationResult:
    """Result of a diagnostics run."""
    passed: bool
    pass_type: str
    issues: list[ValidationIssue] = field(default_factory=list)
    rule_count: int = 0

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    def __str__(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        return (
            f"[{status}] {self.pass_type} "
            f"– {len(self.errors)} error(s), {len(self.warnings)} warning(s)"
        )


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


class PassValidator:
    """
    Checks a ParsedPass (and its raw manifest) for tolerated anomalies.

    Rules implemented:
    - PK-001  More than one style key on the manifest root
    - PK-002  Duplicate field key within a section
    - PK-003  Colour string outside the rgb()/hex grammar
    - PK-004  Unknown barcode format
    - PK-005  No barcode
    - PK-006  Date-styled field whose value is not a date
    - PK-007  Boarding pass without a known transit type
    - PK-008  Required top-level manifest key missing
    - PK-009  Pass is voided
    - PK-010  relevantDate / expirationDate does not parse
    """

    REQUIRED_KEYS = (
        "formatVersion",
        "passTypeIdentifier",
        "serialNumber",
        "teamIdentifier",
        "organizationName",
        "description",
    )

    def validate(self, pass_: ParsedPass) -> ValidationResult:
        issues: list[ValidationIssue] = []
        rules_run = 0
        raw = pass_.raw

        def add(rule_id: str, sev: Severity, msg: str, fld: str | None = None) -> None:
            issues.append(ValidationIssue(rule_id, sev, msg, fld))

        # PK-001 Multiple styles
        rules_run += 1
        styles = present_styles(raw)
        if len(styles) > 1:
            names = ", ".join(s.value for s in styles)
            add(
                "PK-001",
                Severity.WARNING,
                f"Manifest declares several styles ({names}); rendering as '{pass_.style.value}'",
                "style",
            )

        # PK-002 Duplicate keys
        rules_run += 1
        for section, fields in pass_.sections():
            counts = Counter(f.key for f in fields)
            for key, count in counts.items():
                if count > 1:
                    add("PK-002", Severity.WARNING, f"Key '{key}' appears {count} times in {section}", section)

        # PK-003 Colours
        rules_run += 1
        for name, value in (
            ("foregroundColor", pass_.foreground_color),
            ("backgroundColor", pass_.background_color),
            ("labelColor", pass_.label_color),
        ):
            if value is not None and not is_valid_color(value):
                add("PK-003", Severity.WARNING, f"{name} {value!r} is not an rgb() or hex colour", name)

        # PK-004 / PK-005 Barcode
        rules_run += 2
        if pass_.barcode is None:
            add("PK-005", Severity.INFO, "Pass has no barcode; the barcode block is omitted", "barcode")
        elif not pass_.barcode.is_known_format:
            add("PK-004", Severity.WARNING, f"Unknown barcode format '{pass_.barcode.format}'", "barcode")

        # PK-006 Date-styled values
        rules_run += 1
        date_styles = {s.value for s in DateStyle}
        for section, fields in pass_.sections():
            for f in fields:
                if f.date_style in date_styles and isinstance(f.value, str) and parse_date(f.value) is None:
                    add(
                        "PK-006",
                        Severity.WARNING,
                        f"Field '{f.key}' has a date style but value {f.value!r} is not a date",
                        section,
                    )

        # PK-007 Transit type
        rules_run += 1
        if pass_.style == PassStyle.BOARDING_PASS:
            known = {t.value for t in TransitType}
            if pass_.transit_type is None:
                add("PK-007", Severity.WARNING, "Boarding pass has no transitType", "transit_type")
            elif pass_.transit_type not in known:
                add(
                    "PK-007",
                    Severity.WARNING,
                    f"Unknown transitType '{pass_.transit_type}'",
                    "transit_type",
                )

        # PK-008 Required keys
        rules_run += 1
        for key in self.REQUIRED_KEYS:
            if key not in raw:
                add("PK-008", Severity.ERROR, f"Required manifest key '{key}' is missing", key)

        # PK-009 Voided
        rules_run += 1
        if raw.get("voided") is True:
            add("PK-009", Severity.INFO, "Pass is marked as voided", "voided")

        # PK-010 Top-level dates
        rules_run += 1
        for name, value in (
            ("relevantDate", pass_.relevant_date),
            ("expirationDate", pass_.expiration_date),
        ):
            if value is not None and parse_date(value) is None:
                add("PK-010", Severity.WARNING, f"{name} {value!r} is not a date", name)

        passed = not any(i.severity == Severity.ERROR for i in issues)
        return ValidationResult(
            passed=passed,
            pass_type=format_style_label(pass_.style, pass_.transit_type),
            issues=issues,
            rule_count=rules_run,
        )
