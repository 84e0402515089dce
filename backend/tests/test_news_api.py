from datetime import datetime

import httpx

from storyweave.services.news_api import NewsAPIClient, parse_articles


def article_payload(title, url, **extra):
    return {
        "source": {"id": "reuters", "name": "Reuters"},
        "title": title,
        "url": url,
        "description": "Description",
        "publishedAt": "2024-05-01T10:00:00Z",
        **extra,
    }


def client_for(handler, **kwargs) -> NewsAPIClient:
    return NewsAPIClient(
        api_key="secret",
        base_url="https://newsapi.test/v2",
        retry_delay=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_parse_articles_skips_removed_and_incomplete_items():
    articles = parse_articles({"articles": [
        article_payload("Council approves budget", "https://a.example/1"),
        article_payload("[Removed]", "https://removed.com"),
        {"title": "No url"},
        article_payload("", "https://a.example/2"),
        "not an article",
    ]})

    assert [a.url for a in articles] == ["https://a.example/1"]
    assert articles[0].published_at == datetime(2024, 5, 1, 10, 0)


async def test_fetch_sends_query_and_key():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={
            "status": "ok",
            "articles": [article_payload("Council approves budget", "https://a.example/1")],
        })

    result = await client_for(handler).fetch("council budget", datetime(2024, 5, 1, 8, 30), page_size=500)

    assert result.status == "ok"
    assert len(result.articles) == 1
    params = seen[0].url.params
    assert seen[0].url.path == "/v2/everything"
    assert params["q"] == "council budget"
    assert params["apiKey"] == "secret"
    assert params["pageSize"] == "100"
    assert params["from"] == "2024-05-01T08:30:00"


async def test_http_429_is_rate_limited():
    result = await client_for(lambda request: httpx.Response(429, json={})).fetch("budget")

    assert result.status == "rate_limited"
    assert result.rate_limited
    assert result.articles == []


async def test_rate_limit_reported_in_body():
    def handler(request):
        return httpx.Response(200, json={"status": "error", "code": "rateLimited", "message": "Too many requests"})

    result = await client_for(handler).fetch("budget")

    assert result.rate_limited
    assert result.error == "Too many requests"


async def test_api_error_in_body():
    def handler(request):
        return httpx.Response(200, json={"status": "error", "code": "apiKeyInvalid", "message": "Bad key"})

    result = await client_for(handler).fetch("budget")

    assert result.status == "error"
    assert result.error == "Bad key"


async def test_non_object_body_is_an_error():
    result = await client_for(lambda request: httpx.Response(200, json=["oops"])).fetch("budget")

    assert result.status == "error"
    assert result.error == "Unexpected response shape"


async def test_server_error():
    result = await client_for(lambda request: httpx.Response(500, text="boom")).fetch("budget")

    assert result.status == "error"
    assert result.error == "HTTP 500"


async def test_transport_errors_are_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("refused", request=request)

    result = await client_for(handler, max_attempts=3).fetch("budget")

    assert result.status == "error"
    assert len(attempts) == 3


async def test_transient_transport_error_recovers():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json={"status": "ok", "articles": []})

    result = await client_for(handler).fetch("budget")

    assert result.status == "ok"
    assert len(attempts) == 2


async def test_top_headlines_joins_sources():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"status": "ok", "articles": []})

    result = await client_for(handler).fetch_top_headlines(["reuters", "bbc-news"], page_size=20)

    assert result.status == "ok"
    assert seen[0].url.path == "/v2/top-headlines"
    assert seen[0].url.params["sources"] == "reuters,bbc-news"
    assert seen[0].url.params["pageSize"] == "20"
