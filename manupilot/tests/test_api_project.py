"""
API tests for project readiness, feasibility, sample QC and account endpoints.
"""

import json

import pytest

from conftest import OTHER_USER_ID, USER_ID

API = "/api/v1"


class TestReadinessEndpoint:

    def test_owner_sees_readiness(self, client, store, auth_headers):
        [project] = store.seed("projects", [
            {"user_id": USER_ID, "title": "Camp Table", "specs": {"materials": ["Steel"], "colors": "Black"}},
        ])

        response = client.get(f"{API}/projects/{project['id']}/readiness", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["percentage"] == 30
        assert body["missing"][0] == {"field": "features", "label": "Key Features", "required": True}

    def test_other_users_project_is_404(self, client, store, auth_headers):
        [project] = store.seed("projects", [{"user_id": OTHER_USER_ID, "title": "Lamp", "specs": {}}])

        response = client.get(f"{API}/projects/{project['id']}/readiness", headers=auth_headers)

        assert response.status_code == 404

    def test_requires_token(self, client):
        assert client.get(f"{API}/projects/abc/readiness").status_code == 401


class TestFeasibilityEndpoint:

    def test_scores_camel_case_features(self, client, auth_headers):
        response = client.post(
            f"{API}/feasibility",
            json={"processes": ["assembly_only"], "sourcingMode": "white-label", "trendDirection": "Growing"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["manufacturability"]["score"] == 95
        assert body["market"]["momentumScore"] == 75
        assert body["meta"]["version"] == "1.0"

    def test_invalid_band_is_422(self, client, auth_headers):
        response = client.post(f"{API}/feasibility", json={"fragility": "Extreme"}, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["detail"] == "Validation error"


class TestSampleQC:
    """Tests for QC checklist generation and inspection results."""

    def generate(self, client, headers, **overrides):
        body = {
            "projectId": "proj-1",
            "sampleId": "sample-1",
            "playbook": {"productName": "Camp Table", "materials": ["Aluminum"]},
        }
        body.update(overrides)
        return client.post(f"{API}/qc/generate", json=body, headers=headers)

    def test_generate_stores_unchecked_items(self, client, completion_client, auth_headers):
        completion_client.queue(json.dumps({"items": [
            "Legs lock firmly when unfolded",
            "No burrs on extrusion edges",
            "Table top is level within 2 mm",
        ]}))

        response = self.generate(client, auth_headers)

        assert response.status_code == 200
        items = response.json()["items"]
        assert [i["criteria"] for i in items][0] == "Legs lock firmly when unfolded"
        assert {i["result"] for i in items} == {"not_checked"}
        assert completion_client.calls[0]["model"] == "gpt-4o-mini"

        listed = client.get(f"{API}/samples/sample-1/qc", headers=auth_headers).json()["items"]
        assert len(listed) == 3

    def test_missing_playbook_is_400(self, client, completion_client, auth_headers):
        response = self.generate(client, auth_headers, playbook=None)

        assert response.status_code == 400
        assert completion_client.calls == []

    @pytest.mark.parametrize("reply", ['{"items": []}', "not json at all"])
    def test_unusable_completion_is_503(self, client, store, completion_client, auth_headers, reply):
        completion_client.queue(reply)

        response = self.generate(client, auth_headers)

        assert response.status_code == 503
        assert store._rows["sample_qc"] == {}

    def test_record_result(self, client, store, auth_headers):
        [item] = store.seed("sample_qc", [
            {"sample_id": "sample-1", "criteria": "Legs lock firmly", "result": "not_checked"},
        ])

        response = client.patch(
            f"{API}/qc/{item['id']}",
            json={"result": "fail", "comment": "Left leg wobbles"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["item"]["result"] == "fail"
        assert response.json()["item"]["comment"] == "Left leg wobbles"

        invalid = client.patch(f"{API}/qc/{item['id']}", json={"result": "maybe"}, headers=auth_headers)
        assert invalid.status_code == 400

    def test_unknown_item_is_404(self, client, auth_headers):
        response = client.patch(f"{API}/qc/missing", json={"result": "pass"}, headers=auth_headers)
        assert response.status_code == 404


class TestSamplePhotoAnalysis:
    """Tests for visual inspection of sample photos."""

    PHOTO_URL = "https://cdn.example.com/samples/table-1.jpg"

    def test_analysis_is_cached_on_photo(self, client, store, completion_client, auth_headers):
        [photo] = store.seed("sample_photos", [{"sample_id": "sample-1", "photo_url": self.PHOTO_URL}])
        completion_client.queue(json.dumps({
            "description": "Folding table with anodized top",
            "defects": ["Scratch on left leg", " "],
            "recommendation": "Fail",
            "confidence": 140,
        }))

        response = client.post(
            f"{API}/samples/analyze",
            json={"sampleId": "sample-1", "photoUrl": self.PHOTO_URL, "photoId": photo["id"], "context": "Table top"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        analysis = response.json()["analysis"]
        assert analysis["defects"] == ["Scratch on left leg"]
        assert analysis["confidence"] == 100.0
        assert store._rows["sample_photos"][photo["id"]]["ai_analysis"] == analysis

        [call] = completion_client.calls
        assert call["model"] == "gpt-4o-mini"
        assert call["max_tokens"] == 500
        text, image = call["messages"][0]["content"]
        assert "Context: Table top" in text["text"]
        assert image == {"type": "image_url", "image_url": {"url": self.PHOTO_URL}}

    def test_missing_photo_url_is_400(self, client, completion_client, auth_headers):
        response = client.post(f"{API}/samples/analyze", json={"sampleId": "sample-1"}, headers=auth_headers)

        assert response.status_code == 400
        assert completion_client.calls == []

    def test_unusable_completion_is_503(self, client, completion_client, auth_headers):
        completion_client.queue('["not", "an", "object"]')

        response = client.post(
            f"{API}/samples/analyze",
            json={"sampleId": "sample-1", "photoUrl": self.PHOTO_URL},
            headers=auth_headers,
        )

        assert response.status_code == 503


class TestNotifications:
    """Tests for the notification feed."""

    @pytest.fixture
    def notifications(self, store):
        return store.seed("notifications", [
            {"user_id": USER_ID, "title": "New quote", "read": False},
            {"user_id": USER_ID, "title": "RFQ matched", "read": True},
            {"user_id": USER_ID, "title": "Sample shipped", "read": False},
            {"user_id": OTHER_USER_ID, "title": "Not yours", "read": False},
        ])

    def test_list_with_unread_count(self, client, notifications, auth_headers):
        body = client.get(f"{API}/notifications", headers=auth_headers).json()

        assert [n["title"] for n in body["notifications"]] == ["Sample shipped", "RFQ matched", "New quote"]
        assert body["unread_count"] == 2

    def test_unread_only(self, client, notifications, auth_headers):
        body = client.get(f"{API}/notifications", params={"unread_only": True}, headers=auth_headers).json()

        assert {n["title"] for n in body["notifications"]} == {"New quote", "Sample shipped"}

    def test_mark_selected_read(self, client, notifications, auth_headers):
        response = client.post(
            f"{API}/notifications/read",
            json={"notificationIds": [notifications[0]["id"], notifications[3]["id"]]},
            headers=auth_headers,
        )

        # another user's notification is never touched
        assert response.json() == {"success": True, "updated": 1}
        assert client.get(f"{API}/notifications", headers=auth_headers).json()["unread_count"] == 1

    def test_mark_all_read(self, client, notifications, auth_headers, other_auth_headers):
        response = client.post(f"{API}/notifications/read", json={"markAllRead": True}, headers=auth_headers)

        assert response.json()["updated"] == 2
        assert client.get(f"{API}/notifications", headers=auth_headers).json()["unread_count"] == 0
        assert client.get(f"{API}/notifications", headers=other_auth_headers).json()["unread_count"] == 1

    def test_requires_ids_or_mark_all(self, client, auth_headers):
        response = client.post(f"{API}/notifications/read", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Notification IDs required"


class TestNda:
    """Tests for NDA acceptance."""

    def test_unsigned_status(self, client, auth_headers):
        body = client.get(f"{API}/nda/status", headers=auth_headers).json()
        assert body == {"has_signed": False, "nda_version": "1.0"}

    def test_accept_is_idempotent(self, client, store, auth_headers):
        first = client.post(
            f"{API}/nda/accept",
            json={"typedName": "Jordan Lee"},
            headers={**auth_headers, "X-Forwarded-For": "203.0.113.7"},
        ).json()["record"]
        second = client.post(f"{API}/nda/accept", json={}, headers=auth_headers).json()["record"]

        assert first["ip_address"] == "203.0.113.7"
        assert second["id"] == first["id"]
        assert second["typed_name"] == "Jordan Lee"
        assert len(store._rows["nda_acceptances"]) == 1

        status = client.get(f"{API}/nda/status", headers=auth_headers).json()
        assert status["has_signed"] is True
        assert status["accepted_at"]

    def test_proxy_chain_stores_first_hop(self, client, auth_headers):
        record = client.post(
            f"{API}/nda/accept",
            json={},
            headers={
                **auth_headers,
                "X-Forwarded-For": " 198.51.100.23 , " + ", ".join(f"10.0.0.{i}" for i in range(40)),
                "User-Agent": "Mozilla/5.0 " + "x" * 1000,
            },
        ).json()["record"]

        assert record["ip_address"] == "198.51.100.23"
        assert len(record["user_agent"]) == 500
        assert record["user_agent"].startswith("Mozilla/5.0 ")

    def test_reset(self, client, auth_headers, other_auth_headers):
        client.post(f"{API}/nda/accept", json={}, headers=auth_headers)
        client.post(f"{API}/nda/accept", json={}, headers=other_auth_headers)

        response = client.delete(f"{API}/nda", headers=auth_headers)

        assert response.json() == {"success": True, "count": 1}
        assert client.get(f"{API}/nda/status", headers=auth_headers).json()["has_signed"] is False
        assert client.get(f"{API}/nda/status", headers=other_auth_headers).json()["has_signed"] is True
