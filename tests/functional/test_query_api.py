"""
API tests for rule queries, declaration detail, exports and the request log.
"""

import io

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook
from sqlalchemy import select

from customs_app.core.database import CustomsBase
from customs_app.rulesets.models import QueryExecutionLog

JALUR_H = {"combinator": "and", "rules": [{"field": "kodejalur", "operator": "=", "value": "H"}]}
ALL_SAMPLES = {"combinator": "and", "rules": [{"field": "nomordaftar", "operator": "beginsWith", "value": "0001"}]}


def execute(client: TestClient, headers, rules, **options):
    return client.post("/api/rulesets/queries/execute", json={"rules": rules, **options}, headers=headers)


class TestFieldListing:
    """Test the rule builder field listing"""

    def test_get_fields(self, client: TestClient):
        response = client.get("/api/rulesets/queries/fields")
        assert response.status_code == 200

        fields = {field["name"]: field for field in response.json()}
        assert fields["kodejalur"]["choices"] == ["H", "K", "M", "P"]
        assert fields["kodejalur"]["value_type"] == "enum"
        assert fields["barang.postarif"]["one_to_many"] is True
        assert "contains" in fields["importir.namaentitas"]["operators"]
        assert "calculated.total_paid" in fields


class TestSuggestionsAndOptions:
    """Test autocomplete and dropdown endpoints"""

    def test_importer_suggestions(self, client: TestClient, sample_declarations):
        response = client.get("/api/rulesets/queries/suggestions/importir.namaentitas", params={"q": "maju"})
        assert response.status_code == 200
        assert response.json() == ["PT MAJU JAYA"]

    def test_hs_code_suggestions_with_limit(self, client: TestClient, sample_declarations):
        response = client.get("/api/rulesets/queries/suggestions/barang.postarif", params={"q": "84", "limit": 2})
        assert response.json() == ["84713010", "84713020"]

    def test_container_suggestions(self, client: TestClient, sample_declarations):
        response = client.get("/api/rulesets/queries/suggestions/kontainer.nomorkontainer", params={"q": "mscu"})
        assert response.json() == ["MSCU1234567", "MSCU7654321"]

    @pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "x" * 256}, {"q": "a", "limit": 0}])
    def test_suggestion_query_validation(self, client: TestClient, params):
        response = client.get("/api/rulesets/queries/suggestions/barang.uraian", params=params)
        assert response.status_code == 422

    def test_suggestions_for_unknown_field(self, client: TestClient):
        response = client.get("/api/rulesets/queries/suggestions/password", params={"q": "a"})
        assert response.status_code == 422
        assert response.json()["error"] == "UnknownFieldError"

    def test_suggestions_for_number_field(self, client: TestClient):
        response = client.get("/api/rulesets/queries/suggestions/data.cif", params={"q": "1"})
        assert response.status_code == 422
        assert response.json()["error"] == "SuggestionNotSupportedError"

    def test_customs_routes(self, client: TestClient):
        response = client.get("/api/rulesets/queries/options/customs-routes")
        assert response.status_code == 200
        assert {"value": "M", "label": "M - Merah"} in response.json()

    def test_empty_option_list(self, client: TestClient, sample_declarations):
        response = client.get("/api/rulesets/queries/options/process-codes")
        assert response.status_code == 200
        assert response.json() == []

    def test_unknown_option_list(self, client: TestClient):
        response = client.get("/api/rulesets/queries/options/passwords")
        assert response.status_code == 404


class TestQueryExecution:
    """Test ad-hoc rule query execution"""

    def test_summary_rows(self, client: TestClient, user_headers, sample_declarations):
        response = execute(client, user_headers, JALUR_H)
        assert response.status_code == 200

        result = response.json()
        assert result["total"] == 2
        assert result["current_page"] == 1
        assert result["from"] == 1
        assert result["to"] == 2
        first = result["data"][0]
        assert first["idheader"] == 1
        assert first["namaimportir"] == "PT MAJU JAYA"
        assert first["namapenjual"] == "SHANGHAI TRADING CO"
        assert first["kontainer_count"] == 2
        assert first["teus"] == 3.0
        assert first["barang_count"] == 3
        assert first["hscode"] == "84713010"

    def test_child_and_calculated_fields(self, client: TestClient, user_headers, sample_declarations):
        rules = {
            "combinator": "or",
            "rules": [
                {"field": "barang.postarif", "operator": "beginsWith", "value": "6109"},
                {"field": "calculated.total_paid", "operator": ">", "value": 300},
            ],
        }
        result = execute(client, user_headers, rules).json()
        assert [row["idheader"] for row in result["data"]] == [1, 2]

    def test_sections_expand_rows(self, client: TestClient, user_headers, sample_declarations):
        result = execute(client, user_headers, JALUR_H, sections="general,goods").json()

        assert result["total"] == 2
        assert len(result["data"]) == 4
        assert result["columns"][:3] == ["PIB", "Tanggal", "Jalur"]
        assert [row["Uraian Barang"] for row in result["data"]] == [
            "LAPTOP", "MOBILE PHONE", "TABLET 100%_PROMO", "SERVER",
        ]
        assert result["data"][0]["Unit Price"] == "25.0000 USD"

    def test_pagination_and_sort_fallback(self, client: TestClient, user_headers, many_declarations):
        response = execute(client, user_headers, JALUR_H, page=3, per_page=10, sort_by="password", sort_direction="up")
        result = response.json()

        assert result["sort_by"] == "nomordaftar"
        assert result["sort_direction"] == "asc"
        assert result["last_page"] == 3
        assert [row["nomordaftar"] for row in result["data"]] == [f"000{number}" for number in range(221, 226)]

    def test_huge_page_is_empty(self, client: TestClient, user_headers, many_declarations):
        response = execute(client, user_headers, JALUR_H, page=10**17, per_page=100)
        assert response.status_code == 200

        result = response.json()
        assert result["data"] == []
        assert result["total"] == 25
        assert result["from"] is None
        assert result["to"] is None

    def test_empty_query_is_rejected(self, client: TestClient, user_headers, sample_declarations):
        response = execute(client, user_headers, {"combinator": "and", "rules": [{"combinator": "or", "rules": []}]})
        assert response.status_code == 400
        assert response.json()["detail"] == "Query must contain at least one condition"

    def test_unknown_field(self, client: TestClient, user_headers, app_db_session):
        response = execute(client, user_headers, {"rules": [{"field": "1=1 --", "operator": "=", "value": "x"}]})
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "UnknownFieldError"
        assert body["field"] == "1=1 --"

        log = app_db_session.execute(select(QueryExecutionLog)).scalars().one()
        assert log.success is False

    def test_invalid_operator(self, client: TestClient, user_headers):
        rules = {"rules": [{"field": "tanggaldaftar", "operator": "contains", "value": "2024"}]}
        response = execute(client, user_headers, rules)
        assert response.status_code == 422
        assert response.json()["operator"] == "contains"

    def test_malformed_tree(self, client: TestClient, user_headers):
        response = execute(client, user_headers, {"combinator": "xor", "rules": []})
        assert response.status_code == 422
        assert response.json()["error"] == "MalformedRuleTreeError"

    def test_invalid_section(self, client: TestClient, user_headers, sample_declarations):
        response = execute(client, user_headers, JALUR_H, sections=["general", "pajak"])
        assert response.status_code == 422
        assert response.json()["error"] == "InvalidSectionError"

    def test_database_failure(self, client: TestClient, user_headers, customs_engine):
        CustomsBase.metadata.drop_all(bind=customs_engine)

        response = execute(client, user_headers, JALUR_H)
        assert response.status_code == 500
        assert response.json() == {"detail": "Query execution failed"}


class TestDeclarationDetail:
    """Test the full declaration view"""

    def test_get_detail(self, client: TestClient, sample_declarations):
        response = client.get("/api/rulesets/queries/1")
        assert response.status_code == 200

        detail = response.json()
        assert detail["nomordaftar"] == "000101"
        assert detail["data"]["kodevaluta"] == "USD"
        assert len(detail["goods"]) == 3
        assert len(detail["containers"]) == 2
        assert len(detail["duties"]) == 4
        assert detail["documents"][0]["tanggaldokumen"] == "2024-01-02"

    def test_detail_without_data_row(self, client: TestClient, sample_declarations):
        detail = client.get("/api/rulesets/queries/4").json()
        assert detail["data"] is None
        assert detail["containers"] == []

    def test_detail_not_found(self, client: TestClient, sample_declarations):
        response = client.get("/api/rulesets/queries/999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Record not found"


class TestExports:
    """Test file exports"""

    def test_xlsx_export(self, client: TestClient, user_headers, sample_declarations, app_db_session):
        response = client.post(
            "/api/rulesets/export/excel",
            json={"rules": ALL_SAMPLES, "sections": "general,goods", "filename": "pib_q1"},
            headers=user_headers,
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert response.headers["content-disposition"] == 'attachment; filename="pib_q1.xlsx"'

        workbook = load_workbook(io.BytesIO(response.content))
        assert workbook.sheetnames == ["Data Umum", "Barang"]
        assert workbook["Barang"].max_row == 7

        log = app_db_session.execute(select(QueryExecutionLog)).scalars().one()
        assert log.kind == "export"
        assert log.row_count == 10

    def test_flat_export(self, client: TestClient, user_headers, sample_declarations):
        response = client.post(
            "/api/rulesets/export/excel",
            json={"rules": JALUR_H, "sections": ["goods", "containers"], "layout": "flat"},
            headers=user_headers,
        )
        assert response.status_code == 200
        worksheet = load_workbook(io.BytesIO(response.content))["Customs Data"]
        # two container rows for the first declaration, one goods row for the fourth
        assert worksheet.max_row == 4

    def test_csv_export(self, client: TestClient, user_headers, sample_declarations):
        response = client.post(
            "/api/rulesets/export/excel",
            json={"rules": ALL_SAMPLES, "sections": "general", "format": "csv"},
            headers=user_headers,
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"].endswith('.csv"')

        lines = response.text.splitlines()
        assert lines[0].startswith("PIB,Tanggal,Jalur,CAR")
        assert len(lines) == 5

    def test_complete_export(self, client: TestClient, user_headers, sample_declarations):
        response = client.post(
            "/api/rulesets/export/complete", json={"rules": JALUR_H, "sections": "general"}, headers=user_headers
        )
        assert response.status_code == 200
        assert len(load_workbook(io.BytesIO(response.content)).sheetnames) == 7

    def test_export_rejects_path_in_filename(self, client: TestClient, user_headers):
        response = client.post(
            "/api/rulesets/export/excel", json={"rules": JALUR_H, "filename": "../etc/passwd"}, headers=user_headers
        )
        assert response.status_code == 422

    def test_non_ascii_filename(self, client: TestClient, user_headers, sample_declarations):
        response = client.post(
            "/api/rulesets/export/excel",
            json={"rules": JALUR_H, "filename": "ekspor_数据"},
            headers=user_headers,
        )
        assert response.status_code == 200
        assert response.headers["content-disposition"] == (
            "attachment; filename=\"ekspor___.xlsx\"; filename*=UTF-8''ekspor_%E6%95%B0%E6%8D%AE.xlsx"
        )
        assert load_workbook(io.BytesIO(response.content)).sheetnames == ["Data Umum"]

    def test_non_ascii_csv_filename(self, client: TestClient, user_headers, sample_declarations):
        response = client.post(
            "/api/rulesets/export/excel",
            json={"rules": JALUR_H, "format": "csv", "filename": "laporan jalur"},
            headers=user_headers,
        )
        assert response.status_code == 200
        assert response.headers["content-disposition"] == (
            "attachment; filename=\"laporan jalur.csv\"; filename*=UTF-8''laporan%20jalur.csv"
        )

    @pytest.mark.parametrize("filename", ['pib"q1', "pib\r\nX-Injected: 1", "pib\x00"])
    def test_export_rejects_unsafe_filename(self, client: TestClient, user_headers, filename):
        response = client.post(
            "/api/rulesets/export/excel", json={"rules": JALUR_H, "filename": filename}, headers=user_headers
        )
        assert response.status_code == 422

    def test_export_rejects_empty_query(self, client: TestClient, user_headers):
        response = client.post(
            "/api/rulesets/export/excel", json={"rules": {"combinator": "and", "rules": []}}, headers=user_headers
        )
        assert response.status_code == 400


class TestRequestLog:
    """Test request logging"""

    def test_requests_are_logged(self, client: TestClient, user_headers, sample_declarations):
        execute(client, user_headers, JALUR_H)

        response = client.get("/api/logs/?search=queries/execute")
        assert response.status_code == 200
        assert int(response.headers["X-Total-Count"]) >= 1

        log = response.json()[0]
        assert log["method"] == "POST"
        assert log["status_code"] == 200
        assert log["username"] == "analyst"
        assert '"total":2' in log["response_body"]

    def test_export_body_is_replaced(self, client: TestClient, user_headers, sample_declarations):
        client.post("/api/rulesets/export/excel", json={"rules": JALUR_H}, headers=user_headers)

        logs = client.get("/api/logs/?search=export/excel").json()
        assert logs
        assert logs[0]["response_body"].startswith("[Export file:")

    def test_log_reads_are_not_logged(self, client: TestClient):
        client.get("/api/logs/")
        response = client.get("/api/logs/")
        assert response.headers["X-Total-Count"] == "0"

    def test_status_range_validation(self, client: TestClient):
        response = client.get("/api/logs/?status_min=500&status_max=400")
        assert response.status_code == 400

    def test_log_not_found(self, client: TestClient):
        assert client.get("/api/logs/99999").status_code == 404
