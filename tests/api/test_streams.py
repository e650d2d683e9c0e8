"""
Stream Classification API Endpoint Tests

- POST /api/streams/classify returns the envelope with camelCase data
- Validation failures return 400 "Invalid subject combination" with details
- No match returns null stream fields (200) or 404 when configured
- Batch, path-parameter validate, and stream listing endpoints

Anti-Patterns Avoided:
- Constants for repeated string literals
- FakeStreamClassifier injected through dependency_overrides for error paths
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from stream_classifier.api.streams import get_classifier
from stream_classifier.classifiers.classifier import FakeStreamClassifier
from stream_classifier.core.config import Settings
from stream_classifier.main import create_app

# =============================================================================
# Constants
# =============================================================================

CLASSIFY_ENDPOINT = "/api/streams/classify"
CLASSIFY_BATCH_ENDPOINT = "/api/streams/classify/batch"
VALIDATE_ENDPOINT = "/api/streams/validate"
STREAMS_ENDPOINT = "/api/streams"

PHYSICAL_SCIENCE = "Physical Science Stream"
INVALID_COMBINATION = "Invalid subject combination"

HTTP_200_OK = 200
HTTP_400_BAD_REQUEST = 400
HTTP_404_NOT_FOUND = 404
HTTP_500_INTERNAL_SERVER_ERROR = 500


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def app(test_settings: Settings) -> FastAPI:
    return create_app(test_settings)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def _client_with(settings: Settings, **overrides: Any) -> TestClient:
    return TestClient(create_app(settings.model_copy(update=overrides)))


# =============================================================================
# POST /api/streams/classify
# =============================================================================


class TestClassifyEndpoint:
    def test_classify_physical_science(self, client: TestClient) -> None:
        response = client.post(CLASSIFY_ENDPOINT, json={"subjectIds": [6, 1, 2]})

        assert response.status_code == HTTP_200_OK
        assert response.json() == {
            "success": True,
            "data": {
                "streamId": 4,
                "streamName": PHYSICAL_SCIENCE,
                "matchedRule": "three_physical_sciences",
                "subjectIds": [6, 1, 2],
            },
        }

    def test_numeric_strings_accepted(self, client: TestClient) -> None:
        response = client.post(CLASSIFY_ENDPOINT, json={"subjectIds": ["27", "17", "28"]})

        assert response.status_code == HTTP_200_OK
        data = response.json()["data"]
        assert data["streamName"] == "Commerce Stream"
        assert data["subjectIds"] == [27, 17, 28]

    def test_no_match_returns_null_stream(self, client: TestClient) -> None:
        response = client.post(CLASSIFY_ENDPOINT, json={"subjectIds": [1, 17, 29]})

        assert response.status_code == HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["data"]["streamId"] is None
        assert body["data"]["streamName"] is None
        assert body["data"]["matchedRule"] is None

    def test_missing_subject_ids(self, client: TestClient) -> None:
        response = client.post(CLASSIFY_ENDPOINT, json={})

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json() == {
            "success": False,
            "error": "subjectIds array is required",
            "details": {"example": {"subjectIds": [6, 1, 2]}},
        }

    def test_subject_ids_not_a_list(self, client: TestClient) -> None:
        response = client.post(CLASSIFY_ENDPOINT, json={"subjectIds": "6,1,2"})

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "subjectIds array is required"

    @pytest.mark.parametrize(
        ("subject_ids", "details"),
        [
            ([1, 2], "Exactly 3 subject IDs must be provided"),
            ([1, 2, 3, 4], "Exactly 3 subject IDs must be provided"),
            ([1, 1, 2], "All 3 subjects must be different"),
        ],
    )
    def test_invalid_combination(
        self, client: TestClient, subject_ids: list[int], details: str
    ) -> None:
        response = client.post(CLASSIFY_ENDPOINT, json={"subjectIds": subject_ids})

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json() == {
            "success": False,
            "error": INVALID_COMBINATION,
            "details": details,
        }

    def test_non_positive_id(self, client: TestClient) -> None:
        response = client.post(CLASSIFY_ENDPOINT, json={"subjectIds": [1, 0, 2]})

        assert response.status_code == HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["error"] == INVALID_COMBINATION
        assert "position 1" in body["details"]

    def test_malformed_json_uses_envelope(self, client: TestClient) -> None:
        response = client.post(
            CLASSIFY_ENDPOINT,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Invalid request"

    def test_classifier_failure_returns_500(self, app: FastAPI) -> None:
        app.dependency_overrides[get_classifier] = lambda: FakeStreamClassifier(
            error=RuntimeError("store unavailable")
        )
        client = TestClient(app)

        response = client.post(CLASSIFY_ENDPOINT, json={"subjectIds": [6, 1, 2]})

        assert response.status_code == HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {
            "success": False,
            "error": "Failed to classify subjects",
            "details": "store unavailable",
        }

    def test_classifier_is_injected(self, app: FastAPI) -> None:
        fake = FakeStreamClassifier()
        app.dependency_overrides[get_classifier] = lambda: fake
        client = TestClient(app)

        client.post(CLASSIFY_ENDPOINT, json={"subjectIds": [6, 1, 2]})

        assert fake.calls == [[6, 1, 2]]


class TestClassifierSettings:
    def test_no_match_404_mode(self, test_settings: Settings) -> None:
        client = _client_with(test_settings, no_match_status_code=404)

        response = client.post(CLASSIFY_ENDPOINT, json={"subjectIds": [1, 17, 29]})

        assert response.status_code == HTTP_404_NOT_FOUND
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "No matching stream found"

    def test_404_mode_still_returns_matches(self, test_settings: Settings) -> None:
        client = _client_with(test_settings, no_match_status_code=404)

        response = client.post(CLASSIFY_ENDPOINT, json={"subjectIds": [6, 1, 2]})

        assert response.status_code == HTTP_200_OK

    def test_fallback_to_common(self, test_settings: Settings) -> None:
        client = _client_with(test_settings, fallback_to_common=True)

        response = client.post(CLASSIFY_ENDPOINT, json={"subjectIds": [1, 17, 29]})

        data = response.json()["data"]
        assert data["streamName"] == "Common"
        assert data["matchedRule"] == "fallback"

    def test_strict_subjects(self, test_settings: Settings) -> None:
        client = _client_with(test_settings, strict_subjects=True)

        response = client.post(CLASSIFY_ENDPOINT, json={"subjectIds": [1, 2, 999]})

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert "999" in response.json()["details"]


# =============================================================================
# POST /api/streams/classify/batch
# =============================================================================


class TestClassifyBatchEndpoint:
    def test_batch(self, client: TestClient) -> None:
        response = client.post(
            CLASSIFY_BATCH_ENDPOINT,
            json={"combinations": [[6, 1, 2], [1, 1, 2], [1, 17, 29]]},
        )

        assert response.status_code == HTTP_200_OK
        data = response.json()["data"]
        assert data["totalCombinations"] == 3
        assert data["successfulClassifications"] == 2

        first, second, third = data["results"]
        assert first["index"] == 0
        assert first["success"] is True
        assert first["data"]["streamName"] == PHYSICAL_SCIENCE
        assert second == {
            "index": 1,
            "success": False,
            "data": None,
            "error": "All 3 subjects must be different",
        }
        assert third["success"] is True
        assert third["data"]["streamId"] is None

    def test_missing_combinations(self, client: TestClient) -> None:
        response = client.post(CLASSIFY_BATCH_ENDPOINT, json={})

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "combinations array is required"

    def test_combinations_not_a_list(self, client: TestClient) -> None:
        response = client.post(CLASSIFY_BATCH_ENDPOINT, json={"combinations": "x"})

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["success"] is False


# =============================================================================
# GET /api/streams/validate/{id1}/{id2}/{id3}
# =============================================================================


class TestValidateEndpoint:
    def test_validate_matches_classify(self, client: TestClient) -> None:
        by_path = client.get(f"{VALIDATE_ENDPOINT}/6/1/2")
        by_body = client.post(CLASSIFY_ENDPOINT, json={"subjectIds": [6, 1, 2]})

        assert by_path.status_code == HTTP_200_OK
        assert by_path.json() == by_body.json()

    def test_validate_non_numeric(self, client: TestClient) -> None:
        response = client.get(f"{VALIDATE_ENDPOINT}/6/abc/2")

        assert response.status_code == HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["error"] == INVALID_COMBINATION
        assert "position 1" in body["details"]

    def test_validate_duplicates(self, client: TestClient) -> None:
        response = client.get(f"{VALIDATE_ENDPOINT}/6/6/2")

        assert response.status_code == HTTP_400_BAD_REQUEST


# =============================================================================
# GET /api/streams
# =============================================================================


class TestStreamEndpoints:
    def test_list_streams(self, client: TestClient) -> None:
        response = client.get(STREAMS_ENDPOINT)

        assert response.status_code == HTTP_200_OK
        streams = response.json()["data"]
        assert [s["id"] for s in streams] == [1, 2, 3, 4, 5, 6, 7]
        assert streams[3]["name"] == PHYSICAL_SCIENCE
        assert set(streams[0]) == {"id", "name", "description"}

    def test_get_stream(self, client: TestClient) -> None:
        response = client.get(f"{STREAMS_ENDPOINT}/4")

        assert response.status_code == HTTP_200_OK
        data = response.json()["data"]
        assert data["name"] == PHYSICAL_SCIENCE
        assert data["ruleType"] == "physical_science"
        assert data["combinationCount"] == 4

    def test_get_unknown_stream(self, client: TestClient) -> None:
        response = client.get(f"{STREAMS_ENDPOINT}/99")

        assert response.status_code == HTTP_404_NOT_FOUND
        assert response.json() == {"success": False, "error": "Stream not found"}

    def test_get_stream_non_numeric_id(self, client: TestClient) -> None:
        response = client.get(f"{STREAMS_ENDPOINT}/abc")

        assert response.status_code == HTTP_400_BAD_REQUEST

    def test_stream_subjects(self, client: TestClient) -> None:
        response = client.get(f"{STREAMS_ENDPOINT}/4/subjects")

        assert response.status_code == HTTP_200_OK
        subjects = response.json()["data"]
        assert [s["id"] for s in subjects] == [2, 6, 7, 1]
        assert subjects[0] == {"id": 2, "code": "02", "name": "Chemistry", "level": "AL"}

    def test_unknown_stream_subjects(self, client: TestClient) -> None:
        response = client.get(f"{STREAMS_ENDPOINT}/99/subjects")

        assert response.status_code == HTTP_404_NOT_FOUND
