"""Integration tests for the HTTP interface."""

import pytest
from fastapi.testclient import TestClient

from tests.integration.headers import ACCOUNT_HEADERS, OTHER_ACCOUNT_HEADERS


def weekly_chore(member_ids: list[str], **overrides) -> dict:
    payload = {
        "name": "Take Out Trash",
        "recurrence": "WEEKLY",
        "startDate": "2024-01-01",
        "children": {"kind": "chore", "familyMemberIds": member_ids},
    }
    payload.update(overrides)
    return payload


@pytest.mark.integration
class TestHealth:
    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


@pytest.mark.integration
class TestTasksApi:
    """Task routes."""

    def test_create_chore(self, client: TestClient, member_id: str):
        response = client.post("/tasks", json=weekly_chore([member_id]), headers=ACCOUNT_HEADERS)

        assert response.status_code == 201
        body = response.json()
        assert body["kind"] == "chore"
        assert body["recurrenceText"] == "every Monday"
        assert body["priority"] == "MEDIUM"
        assert [a["familyMemberId"] for a in body["assignments"]] == [member_id]

    def test_create_routine(self, client: TestClient):
        payload = {
            "name": "Bedtime",
            "recurrence": "DAILY",
            "startDate": "2024-01-01",
            "children": {
                "kind": "routine",
                "steps": [{"description": "Bath", "order": 4}, {"description": "Story", "estimatedMinutes": 10}],
            },
        }

        response = client.post("/tasks", json=payload, headers=ACCOUNT_HEADERS)

        assert response.status_code == 201
        steps = response.json()["steps"]
        assert [(s["order"], s["description"], s["estimatedMinutes"]) for s in steps] == [
            (0, "Bath", 5),
            (1, "Story", 10),
        ]

    def test_empty_assignment_set_is_422(self, client: TestClient, member_id: str):
        response = client.post("/tasks", json=weekly_chore([]), headers=ACCOUNT_HEADERS)

        assert response.status_code == 422
        assert response.json()["code"] == "ERR_VALIDATION"
        assert "familyMemberIds" in response.json()["details"]

    def test_custom_without_expression_is_422(self, client: TestClient, member_id: str):
        response = client.post("/tasks", json=weekly_chore([member_id], recurrence="CUSTOM"), headers=ACCOUNT_HEADERS)

        assert response.status_code == 422
        assert "customRecurrenceExpr" in response.json()["details"]

    def test_malformed_body_is_422(self, client: TestClient, member_id: str):
        payload = weekly_chore([member_id])
        del payload["startDate"]

        response = client.post("/tasks", json=payload, headers=ACCOUNT_HEADERS)

        assert response.status_code == 422
        assert "startDate" in response.json()["details"]

    def test_missing_account_header_is_422(self, client: TestClient):
        response = client.get("/tasks")

        assert response.status_code == 422
        assert response.json()["code"] == "ERR_VALIDATION"

    def test_foreign_task_is_404(self, client: TestClient, member_id: str):
        task_id = client.post("/tasks", json=weekly_chore([member_id]), headers=ACCOUNT_HEADERS).json()["id"]

        response = client.get(f"/tasks/{task_id}", headers=OTHER_ACCOUNT_HEADERS)

        assert response.status_code == 404
        assert response.json()["code"] == "ERR_NOT_FOUND"

    def test_update_replaces_children(self, client: TestClient, member_id: str):
        second = client.post(
            "/family-members", json={"name": "Sam", "colorTag": "#00FF00"}, headers=ACCOUNT_HEADERS
        ).json()["id"]
        task_id = client.post("/tasks", json=weekly_chore([member_id]), headers=ACCOUNT_HEADERS).json()["id"]

        response = client.put(
            f"/tasks/{task_id}", json=weekly_chore([second], name="Recycling"), headers=ACCOUNT_HEADERS
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Recycling"
        assert [a["familyMemberId"] for a in response.json()["assignments"]] == [second]

    def test_weekly_status_follows_completions(self, client: TestClient, member_id: str):
        task_id = client.post("/tasks", json=weekly_chore([member_id]), headers=ACCOUNT_HEADERS).json()["id"]

        due = client.get("/tasks", params={"today": "2024-01-08"}, headers=ACCOUNT_HEADERS).json()
        assert due[0]["status"] == {"kind": "DUE_TODAY", "dueDate": "2024-01-08"}

        completion = client.post(
            "/completions",
            json={"taskId": task_id, "familyMemberId": member_id, "completedAt": "2024-01-08T18:00:00Z"},
            headers=ACCOUNT_HEADERS,
        )
        assert completion.status_code == 201

        done = client.get("/tasks", params={"today": "2024-01-08"}, headers=ACCOUNT_HEADERS).json()
        assert done[0]["status"]["kind"] == "COMPLETED"

        later = client.get("/tasks", params={"today": "2024-01-09"}, headers=ACCOUNT_HEADERS).json()
        assert later[0]["status"] == {"kind": "UPCOMING", "dueDate": "2024-01-15"}

    def test_delete_task_keeps_completions(self, client: TestClient, member_id: str):
        task_id = client.post("/tasks", json=weekly_chore([member_id]), headers=ACCOUNT_HEADERS).json()["id"]
        client.post("/completions", json={"taskId": task_id, "familyMemberId": member_id}, headers=ACCOUNT_HEADERS)

        response = client.delete(f"/tasks/{task_id}", headers=ACCOUNT_HEADERS)

        assert response.status_code == 204
        assert client.get(f"/tasks/{task_id}", headers=ACCOUNT_HEADERS).status_code == 404
        history = client.get("/completions", params={"taskId": task_id}, headers=ACCOUNT_HEADERS).json()
        assert len(history) == 1


@pytest.mark.integration
class TestCompletionsApi:
    """Completion routes."""

    def test_foreign_member_is_409(self, client: TestClient, member_id: str):
        task_id = client.post("/tasks", json=weekly_chore([member_id]), headers=ACCOUNT_HEADERS).json()["id"]
        outsider = client.post(
            "/family-members", json={"name": "Riley", "colorTag": "#123"}, headers=OTHER_ACCOUNT_HEADERS
        ).json()["id"]

        response = client.post(
            "/completions", json={"taskId": task_id, "familyMemberId": outsider}, headers=ACCOUNT_HEADERS
        )

        assert response.status_code == 409
        assert response.json()["code"] == "ERR_INVALID_REFERENCE"

    def test_undo_completion(self, client: TestClient, member_id: str):
        task_id = client.post("/tasks", json=weekly_chore([member_id]), headers=ACCOUNT_HEADERS).json()["id"]
        completion_id = client.post(
            "/completions", json={"taskId": task_id, "familyMemberId": member_id}, headers=ACCOUNT_HEADERS
        ).json()["id"]

        response = client.delete(f"/completions/{completion_id}", headers=ACCOUNT_HEADERS)

        assert response.status_code == 204
        assert client.get("/completions", headers=ACCOUNT_HEADERS).json() == []


@pytest.mark.integration
class TestFamilyMembersApi:
    """Family member routes."""

    def test_first_member_is_default(self, client: TestClient, member_id: str):
        members = client.get("/family-members", headers=ACCOUNT_HEADERS).json()

        assert members == [
            {"id": member_id, "accountId": "household-1", "name": "Alex", "colorTag": "#FF8800", "isDefault": True}
        ]

    def test_invalid_color_is_422(self, client: TestClient):
        response = client.post("/family-members", json={"name": "Alex", "colorTag": "blue"}, headers=ACCOUNT_HEADERS)

        assert response.status_code == 422
        assert "colorTag" in response.json()["details"]

    def test_cannot_delete_last_member(self, client: TestClient, member_id: str):
        response = client.delete(f"/family-members/{member_id}", headers=ACCOUNT_HEADERS)

        assert response.status_code == 422
        assert "id" in response.json()["details"]

    def test_update_member(self, client: TestClient, member_id: str):
        response = client.put(
            f"/family-members/{member_id}", json={"name": "Alexis", "colorTag": "#FFF"}, headers=ACCOUNT_HEADERS
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Alexis"
        assert response.json()["isDefault"] is True
