from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field

from crm.maintenance.interface import MaintenanceRecordCandidate
from crm.maintenance.models import ProductType
from crm.maintenance.normalize import (
    BOM,
    FIELD_SYNONYMS,
    clean_value,
    is_hardware,
    normalize_date,
    normalize_header,
    parse_money,
    pick_field,
)

logger = logging.getLogger(__name__)

SAMPLE_CSV = """\
Account Name,Purchase Date,Start Date,End Date,Products,Serial Number,Income,COGS,Profit,Margin %,Notes (Hardware Maintenance)
Acme Corp,2024-01-15,2024-01-15,2025-01-15,Microsoft Office 365,ABC123-DEF456,599.99,299.99,300.00,50.0%,Enterprise license
Tech Solutions,2023-06-01,2023-06-01,2026-06-01,Dell OptiPlex 7090,SN789XYZ,1599.99,1299.99,300.00,18.75%,3-year warranty
Creative Agency,2024-03-01,2024-03-01,2025-03-01,Adobe Creative Suite,CC2024-789,799.99,599.99,200.00,25.0%,Annual subscription"""

_REQUIRED_HEADER_TERMS = ("account name", "products", "serial number")
_LOOSE_ACCOUNT = re.compile(r"account\s*name")
_LOOSE_PRODUCT = re.compile(r"products?")
_LINE_BREAK = re.compile(r"\r?\n")


@dataclass(frozen=True)
class ParseResult:
    records: list[MaintenanceRecordCandidate] = field(default_factory=list)
    header_line: int = 0
    delimiter: str = ","
    data_rows: int = 0

    @property
    def dropped_rows(self) -> int:
        return self.data_rows - len(self.records)


def find_header_line(lines: list[str]) -> int:
    """
    Index of the header row, skipping title and comment rows above it.

    Strict pass: all of "account name", "products" and "serial number".
    Loose pass: an account-name-like and a product-like token. Default: 0.
    """
    cleaned = [line.replace(BOM, "").strip().lower() for line in lines]

    for index, line in enumerate(cleaned):
        if all(term in line for term in _REQUIRED_HEADER_TERMS):
            return index

    for index, line in enumerate(cleaned):
        if _LOOSE_ACCOUNT.search(line) and _LOOSE_PRODUCT.search(line):
            return index

    return 0


def detect_delimiter(header_line: str) -> str:
    if "\t" in header_line:
        return "\t"
    if ";" in header_line and "," not in header_line:
        return ";"
    return ","


def _to_candidate(row: dict[str, str]) -> MaintenanceRecordCandidate | None:
    def pick(name: str) -> str | None:
        return pick_field(row, FIELD_SYNONYMS[name])

    product_name = pick("product_name")
    if product_name is None:
        return None

    return MaintenanceRecordCandidate(
        product_name=product_name,
        product_type=(
            ProductType.HARDWARE if is_hardware(product_name) else ProductType.SOFTWARE
        ),
        vendor_name=clean_value(pick("vendor_name")),
        purchase_date=normalize_date(pick("purchase_date")),
        start_date=normalize_date(pick("start_date")),
        end_date=normalize_date(pick("end_date")),
        cost=parse_money(pick("cost")),
        income=parse_money(pick("income")),
        profit=parse_money(pick("profit")),
        margin_percent=parse_money(pick("margin_percent")),
        serial_number=clean_value(pick("serial_number")),
        notes=pick("notes"),
    )


def parse_with_stats(raw_text: str) -> ParseResult:
    """Parse delimited maintenance rows and report how many rows were read."""
    text = raw_text.lstrip(BOM)
    lines = _LINE_BREAK.split(text)
    if not any(line.strip() for line in lines):
        return ParseResult()

    header_index = find_header_line(lines)
    delimiter = detect_delimiter(lines[header_index])

    body = io.StringIO("\n".join(lines[header_index:]))
    rows: list[list[str]] = []
    reader = csv.reader(body, delimiter=delimiter)
    try:
        for r in reader:
            if any(cell.strip() for cell in r):
                rows.append(r)
    except csv.Error:
        # Rows read before the error are kept.
        logger.warning(
            "Unreadable delimited text at line %d, stopping there",
            header_index + reader.line_num,
            exc_info=True,
        )
    if not rows:
        return ParseResult(header_line=header_index, delimiter=delimiter)

    headers = [normalize_header(h) for h in rows[0]]
    records: list[MaintenanceRecordCandidate] = []

    for line_no, values in enumerate(rows[1:], start=1):
        row: dict[str, str] = {}
        for header, value in zip(headers, values):
            row.setdefault(header, value)

        candidate = _to_candidate(row)
        if candidate is None:
            logger.debug("Dropping data row %d: no product name", line_no)
            continue
        records.append(candidate)

    result = ParseResult(
        records=records,
        header_line=header_index,
        delimiter=delimiter,
        data_rows=len(rows) - 1,
    )
    logger.info(
        "Parsed %d of %d maintenance rows (header at line %d, delimiter %r)",
        len(records),
        result.data_rows,
        header_index,
        delimiter,
    )
    return result


def parse(raw_text: str) -> list[MaintenanceRecordCandidate]:
    return parse_with_stats(raw_text).records
