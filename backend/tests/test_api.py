from datetime import timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from storyweave.bootstrap import build_services
from storyweave.config import Settings
from storyweave.main import create_app
from storyweave.utils.dates import utcnow


def article_json(title, url, source_id, source_name):
    published = (utcnow() - timedelta(hours=1)).strftime('%Y-%m-%dT%H:%M:%SZ')
    return {
        "source": {"id": source_id, "name": source_name},
        "title": title,
        "description": "Lawmakers approved the climate package in a late vote",
        "url": url,
        "urlToImage": None,
        "publishedAt": published,
    }


def make_client(news_handler=None, **overrides) -> TestClient:
    settings = Settings(
        DATABASE_URL="sqlite://",
        NEWS_API_KEY="test",
        RECHECK_ENABLED=False,
        RECHECK_BATCH_PAUSE_SECONDS=0,
        **overrides,
    )
    news_handler = news_handler or (lambda request: httpx.Response(200, json={"status": "ok", "articles": []}))
    services = build_services(
        settings,
        ollama_transport=httpx.MockTransport(lambda request: httpx.Response(500, text="down")),
        news_transport=httpx.MockTransport(news_handler),
    )
    return TestClient(create_app(services=services))


@pytest.fixture
def client():
    with make_client() as client:
        yield client


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_health_reports_ollama_unavailable(client):
    body = client.get("/api/v1/health").json()

    assert body["database"] == "healthy"
    assert body["ollama"] == "unavailable"
    assert body["status"] == "degraded"


def test_ingest_clusters_articles_into_one_story(client):
    articles = [
        article_json("Senate passes climate bill", "https://reuters.example/climate", "reuters", "Reuters"),
        article_json("Senate passes climate bill", "https://bbc.example/climate", "bbc-news", "BBC News"),
    ]

    response = client.post("/api/v1/news/ingest", json={"articles": articles})

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["status"] for r in results] == ["success", "success"]
    assert results[0]["story_id"] == results[1]["story_id"]
    story_id = results[0]["story_id"]

    listing = client.get("/api/v1/stories").json()
    assert listing["total"] == 1
    assert listing["stories"][0]["id"] == story_id

    story = client.get(f"/api/v1/stories/{story_id}").json()
    assert len(story["sources"]) == 2
    assert story["metadata"]["total_sources"] == 2

    stored = client.get(f"/api/v1/stories/{story_id}/articles").json()
    assert len(stored["articles"]) == 2
    assert all(a["processed"] for a in stored["articles"])

    links = client.get(f"/api/v1/stories/{story_id}/links").json()["links"]
    assert sorted(link["contribution_type"] for link in links) == ["original", "update"]

    refreshed = client.post(f"/api/v1/stories/{story_id}/refresh")
    assert refreshed.status_code == 200
    assert refreshed.json()["id"] == story_id


def test_reingesting_an_article_is_skipped(client):
    article = article_json("Senate passes climate bill", "https://reuters.example/climate", "reuters", "Reuters")
    client.post("/api/v1/news/ingest", json={"articles": [article]})

    results = client.post("/api/v1/news/ingest", json={"articles": [article]}).json()["results"]

    assert results[0]["status"] == "skipped"
    assert client.get("/api/v1/stories").json()["total"] == 1


def test_unknown_story_is_404(client):
    assert client.get("/api/v1/stories/missing").status_code == 404
    assert client.get("/api/v1/stories/missing/articles").status_code == 404
    assert client.get("/api/v1/stories/missing/links").status_code == 404
    assert client.post("/api/v1/stories/missing/refresh").status_code == 404


def test_fetch_reports_rate_limit():
    with make_client(lambda request: httpx.Response(429, json={})) as client:
        body = client.post("/api/v1/news/fetch").json()

    assert body["status"] == "rate_limited"
    assert body["results"] == []


def test_fetch_ingests_headlines():
    def handler(request):
        return httpx.Response(200, json={"status": "ok", "articles": [
            article_json("Senate passes climate bill", "https://reuters.example/climate", "reuters", "Reuters"),
        ]})

    with make_client(handler) as client:
        body = client.post("/api/v1/news/fetch").json()
        total = client.get("/api/v1/stories").json()["total"]

    assert body["status"] == "success"
    assert total == 1


def test_fetch_disabled_in_database_only_mode():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"status": "ok", "articles": []})

    with make_client(handler, DATABASE_ONLY_MODE=True) as client:
        body = client.post("/api/v1/news/fetch").json()

    assert body["status"] == "database_only"
    assert calls == []


def test_scheduler_status_and_trigger(client):
    status = client.get("/api/v1/scheduler/status").json()

    assert status["is_running"] is False
    assert status["state"] == "idle"
    assert status["next_run_time"] is None
    assert status["cache"]["max_size"] == 100

    triggered = client.post("/api/v1/scheduler/trigger").json()
    assert triggered["summary"]["status"] == "completed"
    assert triggered["summary"]["active_stories"] == 0
