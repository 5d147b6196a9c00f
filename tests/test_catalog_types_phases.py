"""
Study types and study phases share the catalog machinery with designs;
these tests check the per-catalog naming and reverse-reference fields.
"""

import pytest
from fastapi.testclient import TestClient

CATALOGS = [
    pytest.param(
        "/api/study-types", "study_type", "studytypes", "type", "Types", "Study type",
        id="types",
    ),
    pytest.param(
        "/api/study-phases", "study_phase", "studyphases", "phase", "Phases", "Study phase",
        id="phases",
    ),
]


@pytest.mark.parametrize("base, name_field, reverse_field, noun, plural, label", CATALOGS)
class TestCatalog:
    def test_create_and_get(
        self, client: TestClient, admin_headers, base, name_field, reverse_field, noun, plural, label
    ) -> None:
        created = client.post(base, json={name_field: " Phase II "}, headers=admin_headers)

        assert created.status_code == 201
        entry = created.json()["data"]
        assert entry[name_field] == "Phase II"

        fetched = client.get(f"{base}/{entry['_id']}", headers=admin_headers).json()["data"]
        assert fetched["_id"] == entry["_id"]

    def test_duplicate_name_message(
        self, client, admin_headers, base, name_field, reverse_field, noun, plural, label
    ) -> None:
        client.post(base, json={name_field: "Observational"}, headers=admin_headers)
        response = client.post(base, json={name_field: "observational"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"] == f"{label} with this name already exists"

    def test_missing_entry(
        self, client, admin_headers, base, name_field, reverse_field, noun, plural, label
    ) -> None:
        response = client.get(f"{base}/{'c' * 24}", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["message"] == f"{label} not found"

    def test_membership_updates_study_reverse_field(
        self,
        client,
        admin_headers,
        make_study,
        base,
        name_field,
        reverse_field,
        noun,
        plural,
        label,
    ) -> None:
        study = make_study()
        entry = client.post(base, json={name_field: "Linked"}, headers=admin_headers).json()["data"]

        added = client.post(
            f"{base}/{entry['_id']}/studies/{study['_id']}", headers=admin_headers
        ).json()
        assert added["message"] == f"Study added to {noun} successfully"

        linked = client.get(f"/api/studies/{study['_id']}", headers=admin_headers).json()["data"]
        assert linked[reverse_field] == [entry["_id"]]

        client.delete(f"{base}/{entry['_id']}", headers=admin_headers)
        unlinked = client.get(f"/api/studies/{study['_id']}", headers=admin_headers).json()["data"]
        assert unlinked[reverse_field] == []

    def test_stats_keys(
        self, client, admin_headers, base, name_field, reverse_field, noun, plural, label
    ) -> None:
        client.post(base, json={name_field: "Only"}, headers=admin_headers)

        data = client.get(f"{base}/stats", headers=admin_headers).json()["data"]

        assert data[f"total{plural}"] == 1
        assert data[f"active{plural}"] == 1
        assert data[f"inactive{plural}"] == 0
        assert data[f"{noun}Distribution"] == [{"_id": "No Studies", "count": 1}]

    def test_sync_summary_key(
        self, client, admin_headers, base, name_field, reverse_field, noun, plural, label
    ) -> None:
        body = client.post(f"{base}/sync-relationships", headers=admin_headers).json()

        assert body["message"] == f"{label} relationship sync completed"
        assert body["summary"][f"total{plural}"] == 0
