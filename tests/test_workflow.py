"""
Tests for stages, form submissions and page migration logs.
"""

import pytest
from fastapi.testclient import TestClient

FORM = "1a" * 12
PAGE = "2b" * 12


@pytest.fixture
def make_stage(client: TestClient, admin_headers):
    def _make(**payload) -> dict:
        response = client.post("/api/stages", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _make


class TestStages:
    def test_order_numbers_are_assigned_in_sequence(self, make_stage) -> None:
        first = make_stage(name="Screening")
        second = make_stage(name="Enrollment", description="  Consent signed  ")

        assert first["orderNumber"] == 1
        assert second["orderNumber"] == 2
        assert second["description"] == "Consent signed"
        assert first["slug"] == f"screening-{first['uniqueId']}"
        assert first["absoluteUrl"] == f"/stage/detail/{first['slug']}"

    def test_explicit_order_number_continues_after_max(self, make_stage) -> None:
        make_stage(name="Late", orderNumber=10)
        assert make_stage(name="Next")["orderNumber"] == 11

    def test_taken_order_number(self, client, admin_headers, make_stage) -> None:
        make_stage(name="Screening", orderNumber=1)

        response = client.post(
            "/api/stages", json={"name": "Other", "orderNumber": 1}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == (
            "This order number is already in use. Please choose a unique order number."
        )

    def test_duplicate_name(self, client, admin_headers, make_stage) -> None:
        make_stage(name="Screening")

        response = client.post("/api/stages", json={"name": "Screening"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Stage with this name already exists"

    def test_list_is_ordered_by_order_number(self, client, admin_headers, make_stage) -> None:
        make_stage(name="Third", orderNumber=3)
        make_stage(name="First", orderNumber=1)
        make_stage(name="Second", orderNumber=2)

        body = client.get("/api/stages", headers=admin_headers).json()

        assert [s["name"] for s in body["data"]] == ["First", "Second", "Third"]
        assert body["total"] == 3

    def test_get_by_slug_and_details_by_id(self, client, admin_headers, make_stage) -> None:
        stage = make_stage(name="Follow Up", description="Visit 3")

        by_slug = client.get(f"/api/stages/{stage['slug']}", headers=admin_headers).json()
        assert by_slug["data"]["_id"] == stage["_id"]

        details = client.get(f"/api/stages/details/{stage['_id']}", headers=admin_headers).json()
        assert details["data"] == {"name": "Follow Up", "description": "Visit 3", "orderNumber": 1}

    def test_unknown_slug(self, client, admin_headers) -> None:
        response = client.get("/api/stages/no-such-stage", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Stage not found"

    def test_rename_regenerates_slug(self, client, admin_headers, make_stage) -> None:
        stage = make_stage(name="Draft")

        updated = client.put(
            f"/api/stages/{stage['slug']}", json={"name": "Final"}, headers=admin_headers
        ).json()["data"]

        assert updated["slug"] == f"final-{stage['uniqueId']}"
        assert updated["orderNumber"] == stage["orderNumber"]
        assert client.get(f"/api/stages/{stage['slug']}", headers=admin_headers).status_code == 404

    def test_update_to_taken_order_number(self, client, admin_headers, make_stage) -> None:
        make_stage(name="A")
        second = make_stage(name="B")

        response = client.put(
            f"/api/stages/{second['slug']}", json={"orderNumber": 1}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_delete(self, client, admin_headers, make_stage) -> None:
        stage = make_stage(name="Closeout")

        response = client.delete(f"/api/stages/{stage['slug']}", headers=admin_headers)

        assert response.json() == {"success": True, "message": "Stage deleted successfully"}
        assert client.get("/api/stages", headers=admin_headers).json()["total"] == 0

    def test_regular_user_reads_but_cannot_write(self, client, regular_user, make_stage) -> None:
        stage = make_stage(name="Visible")

        assert client.get(f"/api/stages/{stage['slug']}", headers=regular_user.headers).status_code == 200
        response = client.post("/api/stages", json={"name": "Nope"}, headers=regular_user.headers)
        assert response.status_code == 403


class TestFormSubmissions:
    def test_any_user_can_submit(self, client, regular_user) -> None:
        response = client.post(
            "/api/form-submissions",
            json={"form": FORM, "data": {"weight": 71.5, "visit": 2}},
            headers=regular_user.headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["form"] == FORM
        assert data["title"] == "Untitled Form"
        assert data["category"] == "Uncategorized"
        assert data["submittedBy"] == regular_user.user.id
        assert data["slug"] == f"untitled-form-{data['uniqueId']}"

    def test_data_is_required(self, client, admin_headers) -> None:
        response = client.post("/api/form-submissions", json={"form": FORM}, headers=admin_headers)
        assert response.status_code == 400

    def test_invalid_form_id(self, client, admin_headers) -> None:
        response = client.post(
            "/api/form-submissions", json={"form": "abc", "data": {}}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid form ID format"

    def test_list_filtered_by_form(self, client, admin_headers) -> None:
        for form in (FORM, FORM, "3c" * 12):
            client.post(
                "/api/form-submissions",
                json={"form": form, "title": "Vitals", "data": {}},
                headers=admin_headers,
            )

        body = client.get(
            "/api/form-submissions", params={"form": FORM}, headers=admin_headers
        ).json()

        assert body["total"] == 2
        assert all(item["form"] == FORM for item in body["data"])

    def test_only_admin_deletes(self, client, admin_headers, regular_user) -> None:
        submission = client.post(
            "/api/form-submissions",
            json={"form": FORM, "data": {}},
            headers=regular_user.headers,
        ).json()["data"]
        url = f"/api/form-submissions/{submission['_id']}"

        assert client.delete(url, headers=regular_user.headers).status_code == 403
        assert client.delete(url, headers=admin_headers).status_code == 200
        assert client.get(url, headers=admin_headers).status_code == 404


class TestPageMigrationLogs:
    def test_create_records_migrating_admin(self, client, admin_user) -> None:
        response = client.post(
            "/api/page-migration-logs",
            json={"page": PAGE, "notes": "Moved to v2 layout"},
            headers=admin_user.headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["page"] == PAGE
        assert data["migratedBy"] == admin_user.user.id
        assert data["slug"] == f"migration-{data['uniqueId']}"
        assert data["migrationDate"] is not None

    def test_list_filters_by_page_and_paginates(self, client, admin_headers) -> None:
        for _ in range(3):
            client.post("/api/page-migration-logs", json={"page": PAGE}, headers=admin_headers)
        client.post("/api/page-migration-logs", json={"page": "4d" * 12}, headers=admin_headers)

        body = client.get(
            "/api/page-migration-logs",
            params={"page": PAGE, "pageNumber": 2, "limit": 2},
            headers=admin_headers,
        ).json()

        assert body["total"] == 3
        assert body["count"] == 1
        assert body["pagination"] == {"prev": {"page": 1, "limit": 2}}

    def test_regular_user_cannot_create(self, client, regular_user) -> None:
        response = client.post(
            "/api/page-migration-logs", json={"page": PAGE}, headers=regular_user.headers
        )
        assert response.status_code == 403

    def test_get_and_delete(self, client, admin_headers) -> None:
        log = client.post(
            "/api/page-migration-logs", json={"page": PAGE}, headers=admin_headers
        ).json()["data"]
        url = f"/api/page-migration-logs/{log['_id']}"

        assert client.get(url, headers=admin_headers).json()["data"]["_id"] == log["_id"]
        assert client.delete(url, headers=admin_headers).json()["message"] == (
            "Page migration log deleted successfully"
        )

        missing = client.get(url, headers=admin_headers)
        assert missing.status_code == 404
        assert missing.json()["message"] == "Page migration log not found"
