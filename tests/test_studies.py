"""
Tests for /api/studies: CRUD, listing, toggling and stats.
"""

from fastapi.testclient import TestClient

MISSING_ID = "a" * 24


def _get(client: TestClient, headers, study_id: str) -> dict:
    return client.get(f"/api/studies/{study_id}", headers=headers).json()["data"]


class TestCreateStudy:
    def test_create_trims_and_defaults(self, client: TestClient, admin_headers) -> None:
        response = client.post(
            "/api/studies",
            json={
                "study_name": "  Heart Failure Trial  ",
                "protocol_number": " HF-001 ",
                "study_title": "Efficacy of drug X",
                "study_start_date": "2025-03-01T00:00:00Z",
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["study_name"] == "Heart Failure Trial"
        assert data["protocol_number"] == "HF-001"
        assert data["isActive"] is True
        assert len(data["_id"]) == 24
        assert data["slug"].startswith("heart-failure-trial-")
        assert data["absoluteUrl"] == f"/study/{data['slug']}"
        assert data["studydesigns"] == []

    def test_duplicate_protocol_is_case_insensitive(self, client, admin_headers, make_study) -> None:
        make_study(protocol_number="ABC-1")

        response = client.post(
            "/api/studies",
            json={
                "study_name": "Other",
                "protocol_number": "abc-1",
                "study_title": "Other title",
                "study_start_date": "2025-01-01T00:00:00Z",
            },
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Study with this protocol number already exists"

    def test_end_before_start_is_rejected(self, client, admin_headers) -> None:
        response = client.post(
            "/api/studies",
            json={
                "study_name": "Backwards",
                "protocol_number": "BW-1",
                "study_title": "Backwards dates",
                "study_start_date": "2025-05-01T00:00:00Z",
                "study_end_date": "2025-04-01T00:00:00Z",
            },
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Validation error"

    def test_missing_required_fields(self, client, admin_headers) -> None:
        response = client.post("/api/studies", json={"study_name": "x"}, headers=admin_headers)

        assert response.status_code == 400
        fields = {err["field"] for err in response.json()["errors"]}
        assert {"protocol_number", "study_title", "study_start_date"} <= fields


class TestGetStudy:
    def test_malformed_id_is_400(self, client, admin_headers) -> None:
        response = client.get("/api/studies/not-an-id", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid study ID format"

    def test_missing_study_is_404(self, client, admin_headers) -> None:
        response = client.get(f"/api/studies/{MISSING_ID}", headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Study not found"}

    def test_uppercase_id_is_accepted(self, client, admin_headers, make_study) -> None:
        study = make_study()
        response = client.get(f"/api/studies/{study['_id'].upper()}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["data"]["_id"] == study["_id"]


class TestListStudies:
    def test_pages_concatenate_to_full_list(self, client, admin_headers, make_study) -> None:
        created = {make_study()["_id"] for _ in range(5)}

        seen = []
        page = 1
        while True:
            body = client.get(
                "/api/studies",
                params={"page": page, "limit": 2},
                headers=admin_headers,
            ).json()
            assert body["total"] == 5
            seen.extend(item["_id"] for item in body["data"])
            if "next" not in body["pagination"]:
                break
            assert body["pagination"]["next"] == {"page": page + 1, "limit": 2}
            page += 1

        assert len(seen) == 5
        assert set(seen) == created
        assert body["pagination"]["prev"] == {"page": page - 1, "limit": 2}

    def test_search_matches_protocol(self, client, admin_headers, make_study) -> None:
        make_study(protocol_number="ONC-777")
        make_study(protocol_number="CARD-1")

        body = client.get(
            "/api/studies", params={"search": "onc"}, headers=admin_headers
        ).json()

        assert [s["protocol_number"] for s in body["data"]] == ["ONC-777"]

    def test_search_treats_wildcards_literally(self, client, admin_headers, make_study) -> None:
        make_study(study_name="Plain name")

        body = client.get("/api/studies", params={"search": "%"}, headers=admin_headers).json()
        assert body["total"] == 0

    def test_unknown_sort_field_is_400(self, client, admin_headers) -> None:
        response = client.get(
            "/api/studies", params={"sortBy": "password"}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid sortBy field"

    def test_is_active_filter(self, client, admin_headers, make_study) -> None:
        make_study()
        inactive = make_study(isActive=False)

        body = client.get(
            "/api/studies", params={"isActive": "false"}, headers=admin_headers
        ).json()
        assert [s["_id"] for s in body["data"]] == [inactive["_id"]]

    def test_limit_over_100_is_rejected(self, client, admin_headers) -> None:
        response = client.get("/api/studies", params={"limit": 101}, headers=admin_headers)
        assert response.status_code == 400


class TestUpdateStudy:
    def test_partial_update_leaves_other_fields(self, client, admin_headers, make_study) -> None:
        study = make_study(study_title="Original title")

        response = client.put(
            f"/api/studies/{study['_id']}",
            json={"study_name": "Renamed"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["study_name"] == "Renamed"
        assert data["study_title"] == "Original title"
        assert data["uniqueId"] == study["uniqueId"]
        assert data["slug"] == f"renamed-{study['uniqueId']}"

    def test_update_to_taken_protocol_is_400(self, client, admin_headers, make_study) -> None:
        make_study(protocol_number="TAKEN-1")
        other = make_study()

        response = client.put(
            f"/api/studies/{other['_id']}",
            json={"protocol_number": "taken-1"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_null_end_date_clears_it(self, client, admin_headers, make_study) -> None:
        study = make_study(study_end_date="2026-01-01T00:00:00Z")

        response = client.put(
            f"/api/studies/{study['_id']}",
            json={"study_end_date": None},
            headers=admin_headers,
        )
        assert response.json()["data"]["study_end_date"] is None

    def test_end_date_before_stored_start_is_400(
        self, client, admin_headers, make_study
    ) -> None:
        study = make_study(study_start_date="2025-06-01T00:00:00Z")

        response = client.put(
            f"/api/studies/{study['_id']}",
            json={"study_end_date": "2025-01-01T00:00:00Z"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation error"
        assert body["errors"][0]["field"] == "study_end_date"
        assert _get(client, admin_headers, study["_id"])["study_end_date"] is None

    def test_start_date_after_stored_end_is_400(
        self, client, admin_headers, make_study
    ) -> None:
        study = make_study(study_end_date="2025-03-01T00:00:00Z")

        response = client.put(
            f"/api/studies/{study['_id']}",
            json={"study_start_date": "2025-09-01T00:00:00Z"},
            headers=admin_headers,
        )

        assert response.status_code == 400


class TestToggleAndDelete:
    def test_toggle_twice_restores_state(self, client, admin_headers, make_study) -> None:
        study = make_study()
        url = f"/api/studies/{study['_id']}/toggle-status"

        first = client.patch(url, headers=admin_headers).json()["data"]
        second = client.patch(url, headers=admin_headers).json()["data"]

        assert first["isActive"] is False
        assert second["isActive"] is True

    def test_delete_then_get_is_404(self, client, admin_headers, make_study) -> None:
        study = make_study()

        response = client.delete(f"/api/studies/{study['_id']}", headers=admin_headers)
        assert response.json() == {"success": True, "message": "Study deleted successfully"}

        assert client.get(f"/api/studies/{study['_id']}", headers=admin_headers).status_code == 404
        assert client.delete(f"/api/studies/{study['_id']}", headers=admin_headers).status_code == 404


class TestStudyStats:
    def test_stats_counts(self, client, admin_headers, make_study) -> None:
        make_study()
        make_study(isActive=False)
        make_study(study_end_date="2025-06-01T00:00:00Z")

        data = client.get("/api/studies/stats", headers=admin_headers).json()["data"]

        assert data["totalStudies"] == 3
        assert data["activeStudies"] == 2
        assert data["inactiveStudies"] == 1
        assert data["recentStudies"] == 3
        assert data["completedStudies"] == 1
        assert len(data["latestStudies"]) == 3
        assert data["studyDistribution"] == [{"_id": "No Designs", "count": 3}]
