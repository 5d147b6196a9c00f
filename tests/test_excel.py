"""
Tests for the excel intake flow: upload, metadata, parsing, rows and sent
tracking.
"""

from io import BytesIO

import openpyxl
import pytest
from fastapi.testclient import TestClient

from apps.api.excel.parsing import XLS_CONTENT_TYPE, XLSX_CONTENT_TYPE, parse_workbook
from packages.shared.exceptions import ValidationError

MISSING_ID = "d" * 24


def build_workbook(rows: list[list]) -> bytes:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Sites"
    for row in rows:
        sheet.append(row)
    workbook.create_sheet("Notes")
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


SITE_ROWS = [
    ["Site", "Country", "Patients"],
    ["Boston General", "US", 12],
    ["   ", None, None],
    ["Lyon Sud", "FR", 7],
]


@pytest.fixture
def upload(client: TestClient, admin_headers):
    def _upload(rows: list[list] = SITE_ROWS, filename: str = "sites.xlsx") -> dict:
        response = client.post(
            "/api/excel/files/upload",
            files={"file": (filename, build_workbook(rows), XLSX_CONTENT_TYPE)},
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _upload


class TestParsing:
    def test_first_sheet_rows_keyed_by_header(self) -> None:
        parsed = parse_workbook(build_workbook(SITE_ROWS))

        assert parsed.sheet_names == ["Sites", "Notes"]
        assert parsed.columns == ["Site", "Country", "Patients"]
        assert parsed.rows == [
            {"Site": "Boston General", "Country": "US", "Patients": 12},
            {"Site": "Lyon Sud", "Country": "FR", "Patients": 7},
        ]
        assert parsed.skipped_rows == 1

    def test_blank_and_repeated_headers_get_positional_names(self) -> None:
        parsed = parse_workbook(build_workbook([["Site", None, "Site"], ["a", "b", "c"]]))

        assert parsed.columns == ["Site", "Column 2", "Column 3"]

    def test_garbage_bytes_raise_validation_error(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_workbook(b"not a workbook")

        assert exc_info.value.message == "Unable to read excel file"


class TestUpload:
    def test_upload_creates_temporary_record(self, upload) -> None:
        body = upload()

        assert body["message"] == "File uploaded successfully"
        data = body["data"]
        assert body["fileId"] == data["_id"]
        assert data["excel_name"] == "sites.xlsx"
        assert data["fileName"] == "sites.xlsx"
        assert data["temporary"] is True
        assert data["fileUploaded"] is True
        assert data["Studies"] == data["selectedStudies"] == []

    def test_non_excel_content_type_is_rejected(self, client, admin_headers) -> None:
        response = client.post(
            "/api/excel/files/upload",
            files={"file": ("notes.csv", b"a,b\n1,2\n", "text/csv")},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Only Excel files are allowed"

    @pytest.mark.parametrize("content_type", [XLS_CONTENT_TYPE, XLSX_CONTENT_TYPE])
    def test_legacy_xls_is_rejected_before_storing(
        self, client, admin_headers, content_type
    ) -> None:
        legacy = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 504

        response = client.post(
            "/api/excel/files/upload",
            files={"file": ("sites.xls", legacy, content_type)},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == (
            "Legacy .xls workbooks are not supported, save the file as .xlsx"
        )
        listing = client.get("/api/excel/files", headers=admin_headers).json()
        assert listing["total"] == 0

    def test_non_workbook_bytes_are_rejected(self, client, admin_headers) -> None:
        response = client.post(
            "/api/excel/files/upload",
            files={"file": ("sites.xlsx", b"plain text", XLSX_CONTENT_TYPE)},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Only Excel files are allowed"

    def test_upload_requires_admin(self, client, regular_user) -> None:
        response = client.post(
            "/api/excel/files/upload",
            files={"file": ("sites.xlsx", build_workbook(SITE_ROWS), XLSX_CONTENT_TYPE)},
            headers=regular_user.headers,
        )
        assert response.status_code == 403


class TestFileRecords:
    def test_attach_metadata_prefers_selected_studies(
        self, client, admin_headers, upload, make_study
    ) -> None:
        chosen = make_study()
        ignored = make_study()
        file_id = upload()["fileId"]

        response = client.post(
            "/api/excel",
            json={
                "fileId": file_id,
                "excel_name": "  Site roster  ",
                "Studies": [ignored["_id"]],
                "selectedStudies": [chosen["_id"]],
                "selectedColumns": ["Site", "Country"],
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["excel_name"] == "Site roster"
        assert data["Studies"] == [chosen["_id"]]
        assert data["selectedStudies"] == [chosen["_id"]]
        assert data["selectedColumns"] == ["Site", "Country"]

    def test_attach_metadata_requires_file_id(self, client, admin_headers) -> None:
        response = client.post("/api/excel", json={"excel_name": "x"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "File ID is required"

    def test_get_missing_file(self, client, admin_headers) -> None:
        response = client.get(f"/api/excel/files/{MISSING_ID}", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Excel file not found"

    def test_update_and_toggle(self, client, admin_headers, upload) -> None:
        file_id = upload()["fileId"]

        updated = client.put(
            f"/api/excel/files/{file_id}",
            json={"excel_name": "Renamed", "temporary": False},
            headers=admin_headers,
        ).json()["data"]
        assert updated["excel_name"] == "Renamed"
        assert updated["temporary"] is False

        toggled = client.patch(
            f"/api/excel/files/{file_id}/toggle-status", headers=admin_headers
        ).json()["data"]
        assert toggled["isActive"] is False

    def test_list_searches_names(self, client, admin_headers, upload) -> None:
        upload(filename="sites.xlsx")
        upload(filename="drugs.xlsx")

        body = client.get(
            "/api/excel/files", params={"search": "drug"}, headers=admin_headers
        ).json()

        assert body["total"] == 1
        assert body["data"][0]["fileName"] == "drugs.xlsx"

    def test_stats(self, client, admin_headers, upload, make_study) -> None:
        study = make_study()
        first = upload()["fileId"]
        upload()
        client.put(
            f"/api/excel/files/{first}",
            json={"selectedStudies": [study["_id"]], "isActive": False},
            headers=admin_headers,
        )

        data = client.get("/api/excel/stats", headers=admin_headers).json()["data"]

        assert data == {
            "totalExcels": 2,
            "activeExcels": 1,
            "totalStudies": 1,
            "recentExcels": 2,
        }


class TestParseAndRows:
    def test_parse_preview(self, client, admin_headers, upload) -> None:
        file_id = upload()["fileId"]

        data = client.get(f"/api/excel/files/{file_id}/parse", headers=admin_headers).json()[
            "data"
        ]

        assert data["sheetNames"] == ["Sites", "Notes"]
        assert data["columns"] == ["Site", "Country", "Patients"]
        assert data["totalRows"] == 2
        assert data["rows"][1]["Site"] == "Lyon Sud"

    def test_parse_missing_stored_file(self, client, admin_headers, upload, storage) -> None:
        body = upload()
        (storage.base_path / body["data"]["filePath"]).unlink()

        response = client.get(f"/api/excel/files/{body['fileId']}/parse", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Excel file not found on disk"

    def test_create_rows_from_file(self, client, admin_headers, upload, make_study) -> None:
        study = make_study()
        file_id = upload()["fileId"]

        response = client.post(
            "/api/excel/rows/create-from-file",
            json={"fileId": file_id, "studyIds": [study["_id"]]},
            headers=admin_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "2 rows created successfully"
        data = body["data"]
        assert data["totalRows"] == 3
        assert data["createdRows"] == 2
        assert data["skippedRows"] == 1
        assert data["errors"] == []
        assert all(row["studies"] == [study["_id"]] for row in data["rows"])
        assert all(row["sent"] is False for row in data["rows"])

        excel_file = client.get(f"/api/excel/files/{file_id}", headers=admin_headers).json()
        assert excel_file["data"]["temporary"] is False

    def test_create_rows_with_unknown_study(self, client, admin_headers, upload) -> None:
        file_id = upload()["fileId"]

        response = client.post(
            "/api/excel/rows/create-from-file",
            json={"fileId": file_id, "studyIds": [MISSING_ID]},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert client.get("/api/excel/rows", headers=admin_headers).json()["count"] == 0

    def test_header_only_sheet_is_400(
        self, client, admin_headers, upload, make_study
    ) -> None:
        study = make_study()
        file_id = upload(rows=[["Site", "Country"], [None, "  "]])["fileId"]

        response = client.post(
            "/api/excel/rows/create-from-file",
            json={"fileId": file_id, "studyIds": [study["_id"]]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "No data found in Excel file"
        record = client.get(f"/api/excel/files/{file_id}", headers=admin_headers).json()["data"]
        assert record["temporary"] is True


@pytest.fixture
def rows(client: TestClient, admin_headers, upload, make_study):
    """Two rows linked to one study, plus the file id and study."""
    study = make_study()
    file_id = upload()["fileId"]
    data = client.post(
        "/api/excel/rows/create-from-file",
        json={"fileId": file_id, "studyIds": [study["_id"]]},
        headers=admin_headers,
    ).json()["data"]
    return {"file_id": file_id, "study": study, "rows": data["rows"]}


class TestRowTracking:
    def test_mark_single_row_sent(self, client, admin_headers, rows) -> None:
        row_id = rows["rows"][0]["_id"]

        data = client.patch(
            f"/api/excel/rows/{row_id}/mark-sent", headers=admin_headers
        ).json()["data"]
        assert data["sent"] is True

        unsent = client.get(
            "/api/excel/rows", params={"sent": "false"}, headers=admin_headers
        ).json()
        assert [r["_id"] for r in unsent["data"]] == [rows["rows"][1]["_id"]]

    def test_mark_multiple_counts_only_changed_rows(self, client, admin_headers, rows) -> None:
        first, second = (r["_id"] for r in rows["rows"])
        client.patch(f"/api/excel/rows/{first}/mark-sent", headers=admin_headers)

        body = client.patch(
            "/api/excel/rows/mark-multiple-sent",
            json={"rowIds": [first, second]},
            headers=admin_headers,
        ).json()

        assert body["modifiedCount"] == 1
        assert body["message"] == "1 rows marked as sent"

    def test_mark_multiple_validates_ids(self, client, admin_headers) -> None:
        empty = client.patch(
            "/api/excel/rows/mark-multiple-sent", json={"rowIds": []}, headers=admin_headers
        )
        assert empty.status_code == 400
        assert empty.json()["message"] == "rowIds must be a non-empty array"

        bad = client.patch(
            "/api/excel/rows/mark-multiple-sent", json={"rowIds": ["zzz"]}, headers=admin_headers
        )
        assert bad.status_code == 400
        assert bad.json()["invalidIds"] == ["zzz"]

    def test_rows_filtered_by_file(self, client, admin_headers, rows, upload) -> None:
        upload()

        body = client.get(
            "/api/excel/rows", params={"fileId": rows["file_id"]}, headers=admin_headers
        ).json()
        assert body["count"] == 2

    def test_rows_for_study(self, client, admin_headers, rows, make_study) -> None:
        other = make_study()

        linked = client.get(
            f"/api/excel/studies/{rows['study']['_id']}/rows", headers=admin_headers
        ).json()
        unlinked = client.get(f"/api/excel/studies/{other['_id']}/rows", headers=admin_headers).json()

        assert linked["count"] == 2
        assert unlinked["count"] == 0

    def test_update_row_data_and_clinical_link(self, client, admin_headers, rows) -> None:
        first, second = (r["_id"] for r in rows["rows"])
        clinical = "e" * 24

        data = client.put(
            f"/api/excel/rows/{first}",
            json={"rowData": {"Site": "Boston Children's"}, "clinicalData": clinical},
            headers=admin_headers,
        ).json()["data"]
        assert data["rowData"] == {"Site": "Boston Children's"}
        assert data["clinicalData"] == clinical

        clash = client.put(
            f"/api/excel/rows/{second}", json={"clinicalData": clinical}, headers=admin_headers
        )
        assert clash.status_code == 400
        assert clash.json()["message"] == "Clinical data is already linked to another row"

    def test_get_and_delete_row(self, client, admin_headers, rows) -> None:
        row_id = rows["rows"][0]["_id"]

        assert client.get(f"/api/excel/rows/{row_id}", headers=admin_headers).status_code == 200
        deleted = client.delete(f"/api/excel/rows/{row_id}", headers=admin_headers)
        assert deleted.json()["message"] == "Excel row deleted successfully"

        missing = client.get(f"/api/excel/rows/{row_id}", headers=admin_headers)
        assert missing.status_code == 404
        assert missing.json()["message"] == "Excel row not found"

    def test_delete_file_removes_rows_but_keeps_bytes(
        self, client, admin_headers, rows, storage
    ) -> None:
        file_path = client.get(
            f"/api/excel/files/{rows['file_id']}", headers=admin_headers
        ).json()["data"]["filePath"]

        response = client.delete(f"/api/excel/files/{rows['file_id']}", headers=admin_headers)

        assert response.json() == {"success": True, "message": "Excel file deleted successfully"}
        assert client.get("/api/excel/rows", headers=admin_headers).json()["count"] == 0
        assert (storage.base_path / file_path).exists()
