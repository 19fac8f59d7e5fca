"""
Unit tests for the spreadsheet and CSV exporter.
"""

import csv
import io

import pytest
from openpyxl import load_workbook

from customs_app.exports.sections import Section
from customs_app.exports.writer import (
    CSV_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    CustomsExporter,
    _ensure_extension,
    default_filename,
)
from customs_app.query.engine import QueryExecutor
from customs_app.query.exceptions import EmptyQueryRejected

ALL_SAMPLES = {"combinator": "and", "rules": [{"field": "nomordaftar", "operator": "beginsWith", "value": "0001"}]}
JALUR_H = {"combinator": "and", "rules": [{"field": "kodejalur", "operator": "=", "value": "H"}]}
NO_MATCH = {"combinator": "and", "rules": [{"field": "kodejalur", "operator": "=", "value": "P"}]}


@pytest.fixture
def exporter(customs_db_session):
    return CustomsExporter(QueryExecutor(customs_db_session), batch_size=2)


def open_workbook(content: bytes):
    return load_workbook(io.BytesIO(content))


def data_rows(worksheet):
    return list(worksheet.iter_rows(min_row=2, values_only=True))


class TestSheetsLayout:
    """Test the one-sheet-per-section workbook"""

    def test_sheets_and_row_counts(self, exporter, sample_declarations):
        result = exporter.export_xlsx(ALL_SAMPLES, [Section.GENERAL, Section.GOODS])

        assert result.media_type == XLSX_MEDIA_TYPE
        assert result.declarations == 4
        assert result.batches == 2
        assert result.rows_per_sheet == {"Data Umum": 4, "Barang": 6}
        assert result.row_count == 10

        workbook = open_workbook(result.content)
        assert workbook.sheetnames == ["Data Umum", "Barang"]
        assert len(data_rows(workbook["Data Umum"])) == 4
        assert [row[0] for row in data_rows(workbook["Barang"])] == [
            "000101", "000101", "000101", "000102", "000103", "000104",
        ]

    def test_header_row_formatting(self, exporter, sample_declarations):
        workbook = open_workbook(exporter.export_xlsx(ALL_SAMPLES, [Section.GENERAL]).content)
        worksheet = workbook["Data Umum"]

        assert worksheet["A1"].value == "PIB"
        assert worksheet["A1"].font.bold
        assert worksheet["A1"].fill.start_color.rgb.endswith("2563EB")
        assert worksheet.freeze_panes == "A2"

    def test_column_widths_are_capped(self, exporter, sample_declarations):
        worksheet = open_workbook(exporter.export_xlsx(ALL_SAMPLES, [Section.GENERAL]).content)["Data Umum"]
        widths = [dimension.width for dimension in worksheet.column_dimensions.values() if dimension.width]
        assert widths
        assert max(widths) <= 50

    def test_bc11_and_warehouse_share_a_sheet(self, exporter, sample_declarations):
        result = exporter.export_xlsx(ALL_SAMPLES, [Section.BC11, Section.WAREHOUSE])
        assert open_workbook(result.content).sheetnames == ["BC 1.1 & Gudang"]

    def test_every_section(self, exporter, sample_declarations):
        workbook = open_workbook(exporter.export_xlsx(ALL_SAMPLES, list(Section)).content)
        assert workbook.sheetnames == [
            "Data Umum", "Nilai", "BC 1.1 & Gudang", "Barang", "Dokumen", "Kontainer", "Data Pungutan",
        ]
        # BM, PPH, PPN for the first declaration plus one placeholder for each other declaration
        assert len(data_rows(workbook["Data Pungutan"])) == 6

    def test_no_matches_writes_headers_only(self, exporter, sample_declarations):
        result = exporter.export_xlsx(NO_MATCH, [Section.GENERAL, Section.GOODS])
        workbook = open_workbook(result.content)

        assert result.batches == 0
        assert result.declarations == 0
        assert workbook["Barang"].max_row == 1
        assert workbook["Barang"]["A1"].value == "PIB"

    def test_batches_cover_every_declaration(self, customs_db_session, many_declarations):
        exporter = CustomsExporter(QueryExecutor(customs_db_session), batch_size=10)
        result = exporter.export_xlsx(JALUR_H, [Section.GENERAL])

        assert result.batches == 3
        assert result.declarations == 25
        pibs = [row[0] for row in data_rows(open_workbook(result.content)["Data Umum"])]
        assert pibs == sorted(pibs)
        assert len(set(pibs)) == 25

    def test_empty_query_is_rejected_before_writing(self, exporter):
        with pytest.raises(EmptyQueryRejected):
            exporter.export_xlsx({"combinator": "and", "rules": []}, [Section.GENERAL])


class TestFlatLayout:
    """Test the single-sheet layout"""

    def test_flat_sheet(self, exporter, sample_declarations):
        result = exporter.export_xlsx(ALL_SAMPLES, [Section.GENERAL, Section.CONTAINERS], layout="flat")
        workbook = open_workbook(result.content)

        assert workbook.sheetnames == ["Customs Data"]
        assert result.rows_per_sheet == {"Customs Data": 5}
        header = [cell.value for cell in workbook["Customs Data"][1]]
        assert header[:4] == ["PIB", "Tanggal", "Jalur", "CAR"]
        assert "Nomor Kontainer" in header

    def test_flat_sort_descending(self, exporter, sample_declarations):
        result = exporter.export_xlsx(
            ALL_SAMPLES, [Section.GENERAL], layout="flat", sort_by="tanggaldaftar", sort_direction="desc"
        )
        pibs = [row[0] for row in data_rows(open_workbook(result.content)["Customs Data"])]
        assert pibs == ["000104", "000103", "000102", "000101"]


class TestCsvExport:
    """Test CSV output of the flat layout"""

    def test_csv_rows(self, exporter, sample_declarations):
        result = exporter.export_csv(ALL_SAMPLES, [Section.GENERAL, Section.CONTAINERS], filename="containers")

        assert result.media_type == CSV_MEDIA_TYPE
        assert result.filename == "containers.csv"
        assert result.row_count == 5
        rows = list(csv.reader(io.StringIO(result.content.decode("utf-8"))))
        assert rows[0][:3] == ["PIB", "Tanggal", "Jalur"]
        assert len(rows) == 6
        assert [row[0] for row in rows[1:]].count("PIB") == 0

    def test_only_first_chunk_has_header(self, exporter, sample_declarations):
        chunks = list(exporter.iter_csv(ALL_SAMPLES, [Section.GENERAL]))
        assert len(chunks) == 2
        assert chunks[0].startswith("PIB,")
        assert not chunks[1].startswith("PIB,")

    def test_csv_file_is_the_joined_batches(self, exporter, sample_declarations):
        result = exporter.export_csv(ALL_SAMPLES, [Section.GENERAL])

        assert result.batches == 2
        assert result.declarations == 4
        assert result.content == "".join(exporter.iter_csv(ALL_SAMPLES, [Section.GENERAL])).encode("utf-8")

    def test_csv_without_matches(self, exporter, sample_declarations):
        result = exporter.export_csv(NO_MATCH, [Section.GENERAL])
        lines = result.content.decode("utf-8").splitlines()
        assert len(lines) == 1
        assert lines[0].startswith("PIB,Tanggal,Jalur")
        assert result.row_count == 0


class TestFilenames:
    """Test export filename handling"""

    def test_default_filename(self):
        name = default_filename("xlsx")
        assert name.startswith("customs_data_")
        assert name.endswith(".xlsx")

    def test_extension_is_added(self):
        assert _ensure_extension("jalur_merah", "xlsx") == "jalur_merah.xlsx"
        assert _ensure_extension("report.CSV", "csv") == "report.CSV"

    def test_blank_filename_uses_default(self):
        assert _ensure_extension("  ", "csv").startswith("customs_data_")
        assert _ensure_extension(None, "xlsx").endswith(".xlsx")
