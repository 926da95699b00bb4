import csv
from collections.abc import Generator

import pytest

from crm.maintenance.csv_import import (
    SAMPLE_CSV,
    detect_delimiter,
    find_header_line,
    parse,
    parse_with_stats,
)
from crm.maintenance.models import MaintenanceStatus, ProductType

HEADER = "Account Name,End Date,Products,Serial Number,COGS"
ROW = "Acme Corp,2025-01-15,Microsoft Office 365,ABC-1,299.99"


class TestSampleImport:
    def test_parses_three_records(self) -> None:
        records = parse(SAMPLE_CSV)

        assert [r.product_type for r in records] == [
            ProductType.SOFTWARE,
            ProductType.HARDWARE,
            ProductType.SOFTWARE,
        ]
        assert [(r.income, r.cost, r.profit) for r in records] == [
            (599.99, 299.99, 300.0),
            (1599.99, 1299.99, 300.0),
            (799.99, 599.99, 200.0),
        ]

    def test_all_fields_mapped(self) -> None:
        first = parse(SAMPLE_CSV)[0]

        assert first.product_name == "Microsoft Office 365"
        assert first.vendor_name == "Acme Corp"
        assert first.purchase_date == "2024-01-15"
        assert first.start_date == "2024-01-15"
        assert first.end_date == "2025-01-15"
        assert first.serial_number == "ABC123-DEF456"
        assert first.margin_percent == 50.0
        assert first.notes == "Enterprise license"
        assert first.status is MaintenanceStatus.ACTIVE

    def test_parse_is_repeatable(self) -> None:
        assert parse(SAMPLE_CSV) == parse(SAMPLE_CSV)


class TestHeaderDiscovery:
    @pytest.mark.parametrize("preamble_lines", [0, 1, 3, 7])
    def test_header_found_after_preamble(self, preamble_lines: int) -> None:
        preamble = [f"Report title line {i}" for i in range(preamble_lines)]
        text = "\n".join([*preamble, HEADER, ROW])

        result = parse_with_stats(text)

        assert result.header_line == preamble_lines
        assert len(result.records) == 1
        assert result.records[0].product_name == "Microsoft Office 365"

    def test_loose_match_without_serial_column(self) -> None:
        lines = ["Exported from CRM", "AccountName;Product;End", "x;y;z"]
        assert find_header_line(lines) == 1

    def test_defaults_to_first_line(self) -> None:
        assert find_header_line(["Vendor,Product,End", "a,b,c"]) == 0

    def test_bom_before_header(self) -> None:
        records = parse("\ufeff" + HEADER + "\n" + ROW)

        assert len(records) == 1
        assert records[0].vendor_name == "Acme Corp"


class TestDelimiters:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("a\tb,c", "\t"),
            ("a;b;c", ";"),
            ("a;b,c", ","),
            ("a,b,c", ","),
            ("abc", ","),
        ],
    )
    def test_detect_delimiter(self, line: str, expected: str) -> None:
        assert detect_delimiter(line) == expected

    def test_same_row_in_every_delimiter(self) -> None:
        by_delimiter = {
            sep: parse(f"{HEADER.replace(',', sep)}\n{ROW.replace(',', sep)}")
            for sep in (",", ";", "\t")
        }

        assert by_delimiter[","] == by_delimiter[";"] == by_delimiter["\t"]
        assert by_delimiter[","][0].cost == 299.99

    def test_quoted_values_keep_commas(self) -> None:
        text = 'Products,COGS,Notes\n"Office, Pro","$1,299.99","a, b"'

        record = parse(text)[0]

        assert record.product_name == "Office, Pro"
        assert record.cost == 1299.99
        assert record.notes == "a, b"


class TestRowHandling:
    def test_rows_without_product_are_dropped(self) -> None:
        text = "\n".join(
            [
                HEADER,
                ROW,
                "Ghost Inc,2025-01-01,,SN-0,10",
                "Other Inc,2025-01-01,   ,SN-1,10",
                "Acme Corp,2025-02-01,Dell Latitude Laptop,SN-2,10",
            ]
        )

        result = parse_with_stats(text)

        assert result.data_rows == 4
        assert result.dropped_rows == 2
        assert [r.product_name for r in result.records] == [
            "Microsoft Office 365",
            "Dell Latitude Laptop",
        ]

    def test_empty_lines_are_skipped(self) -> None:
        text = f"{HEADER}\r\n\r\n{ROW}\r\n\r\n"

        result = parse_with_stats(text)

        assert result.data_rows == 1
        assert len(result.records) == 1

    def test_bad_fields_degrade_to_none(self) -> None:
        text = f"{HEADER}\nAcme,someday,Office,N/A,lots"

        record = parse(text)[0]

        assert record.end_date is None
        assert record.cost is None
        assert record.serial_number is None
        assert record.product_name == "Office"

    def test_short_rows(self) -> None:
        record = parse(f"{HEADER}\nAcme,2025-01-15,Office")[0]

        assert record.serial_number is None
        assert record.cost is None

    def test_synonym_headers(self) -> None:
        text = (
            "Vendor Name\tProduct Name\tEnd\tCost\tMargin\n"
            "Contoso\tVisio\t2025-03-01\t$10\t5%"
        )

        record = parse(text)[0]

        assert record.vendor_name == "Contoso"
        assert record.product_name == "Visio"
        assert record.end_date == "2025-03-01"
        assert record.cost == 10.0
        assert record.margin_percent == 5.0

    @pytest.mark.parametrize("text", ["", "   ", "\n\n", "\ufeff"])
    def test_empty_input(self, text: str) -> None:
        result = parse_with_stats(text)

        assert result.records == []
        assert result.data_rows == 0

    def test_header_only(self) -> None:
        result = parse_with_stats(HEADER)

        assert result.records == []
        assert result.data_rows == 0


class TestFixtureFiles:
    def test_vendor_export(self, vendor_export_csv: str) -> None:
        result = parse_with_stats(vendor_export_csv)

        assert result.header_line == 3
        assert result.data_rows == 4
        assert [r.product_name for r in result.records] == [
            "Microsoft Office 365",
            "Dell PowerEdge R750 Server",
            "Fortinet Firewall 60F",
        ]

        office, server, firewall = result.records
        assert office.income == 1299.99
        assert office.cost == 999.99
        assert office.end_date == "2025-01-15"
        assert server.product_type is ProductType.HARDWARE
        assert server.purchase_date is None
        assert server.start_date == "2023-06-15"
        assert server.cost == 4500.0
        assert server.notes == "Rack 4, bay 2"
        assert firewall.product_type is ProductType.HARDWARE
        assert firewall.purchase_date == "2024-03-01"
        assert firewall.end_date == "2025-01-03"

    def test_license_report(self, license_report_tsv: str) -> None:
        result = parse_with_stats(license_report_tsv)

        assert result.delimiter == "\t"
        veeam, meraki = result.records
        assert veeam.vendor_name == "Contoso"
        assert veeam.product_type is ProductType.SOFTWARE
        assert veeam.cost == 2500.0
        assert veeam.notes is None
        assert meraki.product_type is ProductType.HARDWARE
        assert meraki.end_date == "2025-01-31"
        assert meraki.serial_number == "MR-44"


@pytest.fixture
def small_field_limit() -> Generator[None]:
    previous = csv.field_size_limit(40)
    yield
    csv.field_size_limit(previous)


class TestProductNameAndLineBreaks:
    def test_na_product_name_is_kept(self) -> None:
        text = "Account Name,Products,Serial Number\nAcme,N/A,SN1\nAcme,Office,SN2"

        result = parse_with_stats(text)

        assert [r.product_name for r in result.records] == ["N/A", "Office"]
        assert result.data_rows == len(result.records)

    def test_only_newlines_split_rows(self) -> None:
        text = f'{HEADER},Notes\n{ROW},"rack 4\x0cbay 2\x85left"\n'

        result = parse_with_stats(text)

        assert result.data_rows == 1
        assert result.records[0].notes == "rack 4\x0cbay 2\x85left"

    def test_unreadable_row_keeps_earlier_rows(self, small_field_limit: None) -> None:
        text = "\n".join(
            [
                HEADER,
                ROW,
                f"Acme Corp,2025-01-15,{'x' * 100},SN-2,10",
                "Acme Corp,2025-01-15,Visio,SN-3,10",
            ]
        )

        result = parse_with_stats(text)

        assert [r.product_name for r in result.records] == ["Microsoft Office 365"]
