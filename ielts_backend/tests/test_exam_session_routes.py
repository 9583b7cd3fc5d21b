"""
HTTP tests for the exam session and admin results endpoints.
"""
import pytest
import pytest_asyncio
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport

from ielts_backend.config.feature_flags import FeatureFlags
from ielts_backend.database import get_db
from ielts_backend.main import app


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def reading_session(exam_factory, session_factory):
    created = await exam_factory({"reading": [
        {"question_type": "true_false", "correct_answer": "NOT GIVEN", "points": 1},
        {"question_type": "fill_blank", "correct_answer": "red;blue", "points": 1},
    ]}, exam_type="general_training")
    session = await session_factory(created["exam"])
    return session, created["reading"]


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_submit_and_read_results(client: AsyncClient, reading_session):
    session, (tf, blanks) = reading_session

    response = await client.post(f"/api/exams/sessions/{session.id}/submit", json={
        "answers": [
            {"questionId": tf.id, "studentAnswer": "ng"},
            {"questionId": blanks.id, "studentAnswer": ["red", "green"]},
        ]
    })
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["score"]["totalScore"] == 1
    assert body["data"]["score"]["maxPossibleScore"] == 2
    verdicts = {item["questionId"]: item for item in body["data"]["answers"]}
    assert verdicts[str(tf.id)]["isCorrect"] is True
    assert verdicts[str(blanks.id)]["isCorrect"] is False

    results = await client.get(f"/api/exams/sessions/{session.id}/results")
    assert results.status_code == 200
    data = results.json()["data"]
    assert data["summary"]["reading"]["correct"] == 2
    assert data["summary"]["reading"]["total"] == 3
    assert all("correctAnswer" not in row for row in data["answers"])


@pytest.mark.asyncio
async def test_second_submit_returns_400(client: AsyncClient, reading_session):
    session, (tf, _) = reading_session
    payload = {"answers": [{"questionId": tf.id, "studentAnswer": "ng"}]}

    assert (await client.post(f"/api/exams/sessions/{session.id}/submit", json=payload)).status_code == 200
    response = await client.post(f"/api/exams/sessions/{session.id}/submit", json=payload)
    assert response.status_code == 400
    assert response.json()["code"] == "ALREADY_SUBMITTED"
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_unknown_session_returns_404(client: AsyncClient):
    response = await client.post("/api/exams/sessions/4242/submit", json={"answers": []})
    assert response.status_code == 404
    assert response.json()["code"] == "SESSION_NOT_FOUND"


@pytest.mark.asyncio
async def test_invalid_body_returns_422(client: AsyncClient, reading_session):
    session, _ = reading_session
    response = await client.post(f"/api/exams/sessions/{session.id}/submit", json={"answers": [{"studentAnswer": "x"}]})
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_autosave(client: AsyncClient, reading_session):
    session, (tf, _) = reading_session
    response = await client.put(
        f"/api/exams/sessions/{session.id}/answers",
        json={"questionId": tf.id, "studentAnswer": "true"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["studentAnswer"] == "true"


@pytest.mark.asyncio
async def test_admin_results_include_correct_answers(client: AsyncClient, reading_session):
    session, (tf, _) = reading_session
    await client.post(f"/api/exams/sessions/{session.id}/submit", json={
        "answers": [{"questionId": tf.id, "studentAnswer": "ng"}]
    })

    response = await client.get(f"/api/admin/sessions/{session.id}/results")
    assert response.status_code == 200
    assert response.json()["data"]["answers"][0]["correctAnswer"] == "NOT GIVEN"


@pytest.mark.asyncio
async def test_admin_regrade(client: AsyncClient, reading_session):
    session, (tf, _) = reading_session
    await client.post(f"/api/exams/sessions/{session.id}/submit", json={
        "answers": [{"questionId": tf.id, "studentAnswer": "ng"}]
    })

    response = await client.post(f"/api/admin/sessions/{session.id}/regrade")
    assert response.status_code == 200
    assert response.json()["data"]["score"]["totalScore"] == 1


@pytest.mark.asyncio
async def test_admin_regrade_disabled(client: AsyncClient, reading_session, monkeypatch):
    monkeypatch.setattr(FeatureFlags, "FEATURE_ADMIN_REGRADE", False)
    session, _ = reading_session

    response = await client.post(f"/api/admin/sessions/{session.id}/regrade")
    assert response.status_code == 403
    assert response.json()["code"] == "FEATURE_DISABLED"
