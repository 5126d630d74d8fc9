from __future__ import annotations

from conftest import wait_for_background
from learnpath.core.errors import ProviderFailure


def _start(client, thread_id="t-1", topic="Volcanoes", age_group="5-7"):
    response = client.post("/journeys", json={"thread_id": thread_id, "topic": topic, "age_group": age_group})
    assert response.status_code == 200
    return response.json()


def test_health_reports_provider(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["llm_provider"] == "fake"
    assert response.headers["x-request-id"]


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"x-request-id": "req-123"})
    assert response.headers["x-request-id"] == "req-123"


def test_start_returns_active_journey_with_first_step(client):
    body = _start(client)

    assert body["threadId"] == "t-1"
    assert body["status"] == "active"
    assert body["title"] == "Exploring Volcanoes"
    assert body["steps"][0]["stepNumber"] == 1
    assert body["currentStepIndex"] == 0

    step = client.get("/journeys/t-1/step")
    assert step.status_code == 200
    assert step.json()["stepNumber"] == 1


def test_unknown_journey_uses_error_envelope(client):
    for response in (
        client.get("/journeys/nope/step"),
        client.get("/journeys/nope/status"),
        client.get("/journeys/nope"),
        client.post("/journeys/nope/advance"),
        client.get("/journeys/nope/summary"),
    ):
        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "journey_not_found"
        assert error["details"] == {"thread_id": "nope"}
        assert response.json()["success"] is False


def test_request_validation(client):
    response = client.post("/journeys", json={"thread_id": "", "topic": "Volcanoes"})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "validation_error"

    _start(client)
    response = client.post("/journeys/t-1/answer", json={"answer": ""})
    assert response.status_code == 422


def test_full_journey_over_http(client, service):
    _start(client)
    wait_for_background(service)
    assert client.get("/journeys/t-1/status").json()["fullPathReady"] is True

    for expected in (2, 3):
        answer = client.post("/journeys/t-1/answer", json={"answer": "Lava is hot"})
        assert answer.json()["type"] == "feedback"
        step = client.post("/journeys/t-1/advance").json()
        assert step["type"] == "next_step"
        assert step["stepNumber"] == expected

    completion = client.post("/journeys/t-1/advance").json()
    assert completion["type"] == "completion"
    assert len(completion["nextTopics"]) == 3

    summary = client.get("/journeys/t-1/summary").json()
    assert summary["stepsCompleted"] == 2
    assert summary["totalSteps"] == 3

    quiz = client.post("/journeys/t-1/quiz", json={"external_context": []})
    assert quiz.status_code == 200
    assert quiz.json()["totalQuestions"] == 2

    practice = client.get("/journeys/t-1/practice-quiz").json()
    assert practice["type"] == "practice_quiz"
    assert len(practice["questions"]) == 5

    # Finished journeys have no current step.
    assert client.get("/journeys/t-1/step").status_code == 404
    assert client.get("/journeys/t-1/status").json()["status"] == "completed"


def test_quiz_before_completion_is_conflict(client):
    _start(client)

    response = client.post("/journeys/t-1/quiz")

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "usage_error"


def test_abandon_then_mutations_conflict(client, service):
    _start(client)
    wait_for_background(service)

    abandoned = client.post("/journeys/t-1/abandon", json={"reason": "bored"}).json()
    assert abandoned["type"] == "abandoned"
    assert abandoned["completionPercent"] == 0

    info = client.get("/journeys/t-1").json()
    assert info["status"] == "abandoned"
    assert info["abandonReason"] == "bored"
    assert client.post("/journeys/t-1/advance").status_code == 409
    assert client.post("/journeys/t-1/answer", json={"answer": "hi"}).status_code == 409
    assert client.post("/journeys/t-1/abandon").status_code == 409


def test_unavailable_step_is_retryable_503(client, service, provider):
    provider.replies["path"] = ProviderFailure("planner down", provider="fake")
    provider.replies["step"] = ProviderFailure("synth down", provider="fake")
    _start(client, age_group="8-10")
    wait_for_background(service)

    response = client.post("/journeys/t-1/advance")

    assert response.status_code == 503
    error = response.json()["error"]
    assert error["code"] == "step_unavailable"
    assert error["details"] == {"retryable": True, "step_number": 2}

    provider.replies["step"] = '{"title": "Back again", "content": "c", "question": "q?"}'
    retry = client.post("/journeys/t-1/advance")
    assert retry.status_code == 200
    assert retry.json()["title"] == "Back again"


def test_provider_failure_on_completion_is_502(client, service, provider):
    _start(client)
    wait_for_background(service)
    client.post("/journeys/t-1/advance")
    client.post("/journeys/t-1/advance")
    provider.replies["follow_ups"] = ProviderFailure("down", provider="fake", reason="http_503")

    response = client.post("/journeys/t-1/advance")

    assert response.status_code == 502
    assert response.json()["error"]["details"] == {"reason": "http_503"}
    assert client.get("/journeys/t-1/status").json()["status"] == "active"


def test_evict_removes_journey(client, service):
    _start(client)
    wait_for_background(service)

    assert client.delete("/journeys/t-1").json() == {"thread_id": "t-1", "status": "evicted"}
    assert client.delete("/journeys/t-1").status_code == 404
    assert service.get_journey("t-1") is None
