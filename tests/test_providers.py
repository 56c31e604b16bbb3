"""Tests for provider adapters against a mocked HTTP transport."""

from __future__ import annotations

import asyncio

import httpx

from atlas_feed.config import AppConfig
from atlas_feed.core.taxonomy import Provider, Topic
from atlas_feed.core.types import ErrorKind, FetchOptions
from atlas_feed.providers import base, social
from atlas_feed.providers.base import stable_hash
from atlas_feed.providers.media import MediaProvider
from atlas_feed.providers.news import NewsProvider
from atlas_feed.providers.social import SocialProvider


def make_config() -> AppConfig:
    cfg = AppConfig()
    cfg.news.api_key = "news-key"
    cfg.media.api_key = "tmdb-key"
    cfg.news.rate_limit_delay = 0
    cfg.media.rate_limit_delay = 0
    cfg.social.rate_limit_delay = 0
    return cfg


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def article(title: str, url: str, published: str = "2024-05-01T10:00:00Z") -> dict:
    return {
        "source": {"id": None, "name": "Example Times"},
        "author": "Reporter",
        "title": title,
        "description": "Summary",
        "url": url,
        "urlToImage": "https://img.example.com/a.jpg",
        "publishedAt": published,
        "content": "Body",
    }


def reddit_post(post_id: str, subreddit: str = "movies", **overrides) -> dict:
    post = {
        "id": post_id,
        "title": f"Post {post_id}",
        "subreddit": subreddit,
        "subreddit_id": "t5_abc",
        "author": "someone",
        "created_utc": 1714564800,
        "score": 120,
        "ups": 120,
        "upvote_ratio": 0.95,
        "num_comments": 14,
        "permalink": f"/r/{subreddit}/comments/{post_id}/slug/",
        "url": f"https://www.reddit.com/r/{subreddit}/comments/{post_id}/slug/",
        "is_self": True,
        "selftext": "text",
    }
    post.update(overrides)
    return post


def listing(*posts: dict) -> dict:
    return {"kind": "Listing", "data": {"children": [{"kind": "t3", "data": p} for p in posts]}}


# -- news ----------------------------------------------------------------


def test_news_missing_key_is_configuration_error(monkeypatch):
    monkeypatch.delenv("NEWS_API_KEY", raising=False)
    cfg = make_config()
    cfg.news.api_key = None
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"status": "ok", "articles": []})

    provider = NewsProvider(cfg, client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.TECHNOLOGY]))

    assert result.ok is False
    assert result.error is ErrorKind.CONFIGURATION_ERROR
    assert "NEWS_API_KEY" in result.message
    assert calls == []


def test_news_transforms_articles_and_drops_removed():
    url = "https://example.com/story"

    def handler(request):
        assert request.url.path == "/v2/top-headlines"
        assert request.url.params["category"] == "technology"
        assert request.url.params["apiKey"] == "news-key"
        return httpx.Response(
            200,
            json={
                "status": "ok",
                "articles": [
                    article("Chip makers rally", url),
                    article("[Removed]", "https://removed.example.com"),
                    {"title": "", "url": "https://blank.example.com"},
                ],
            },
        )

    provider = NewsProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.TECHNOLOGY], FetchOptions(limit=10)))

    assert result.ok is True
    assert len(result.items) == 1
    item = result.items[0]
    assert item.id == f"news:{stable_hash(url)}"
    assert item.provider is Provider.NEWS
    assert item.topics == (Topic.TECHNOLOGY,)
    assert item.primary_topic is Topic.TECHNOLOGY
    assert item.extras.category == "technology"
    assert item.extras.source_site == "Example Times"
    assert item.published_at.isoformat() == "2024-05-01T10:00:00+00:00"
    assert item.engagement_score is None


def test_news_body_error_codes_are_classified():
    def handler(request):
        return httpx.Response(
            429, json={"status": "error", "code": "rateLimited", "message": "Too many requests"}
        )

    provider = NewsProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_trending())

    assert result.ok is False
    assert result.error is ErrorKind.RATE_LIMITED
    assert result.message == "Too many requests"


def test_news_invalid_key_in_body_is_configuration_error():
    def handler(request):
        return httpx.Response(401, json={"status": "error", "code": "apiKeyInvalid", "message": "bad key"})

    provider = NewsProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.SCIENCE]))

    assert result.error is ErrorKind.CONFIGURATION_ERROR


def test_news_partial_fan_out_keeps_successful_categories():
    def handler(request):
        if request.url.params["category"] == "science":
            return httpx.Response(500, text="boom")
        return httpx.Response(
            200, json={"status": "ok", "articles": [article("Tech", "https://example.com/t")]}
        )

    provider = NewsProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.TECHNOLOGY, Topic.SCIENCE]))

    assert result.ok is True
    assert len(result.items) == 1
    assert "science" in result.message


def test_news_total_fan_out_failure_uses_first_error():
    def handler(request):
        return httpx.Response(503, text="unavailable")

    provider = NewsProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.TECHNOLOGY, Topic.SCIENCE]))

    assert result.ok is False
    assert result.error is ErrorKind.UPSTREAM_ERROR
    assert result.items == ()
    assert "technology" in result.message and "science" in result.message


def test_non_json_body_is_malformed_response():
    def handler(request):
        return httpx.Response(200, text="<html>captcha</html>", headers={"content-type": "text/html"})

    provider = NewsProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_trending())

    assert result.error is ErrorKind.MALFORMED_RESPONSE


def test_unexpected_shape_is_malformed_response():
    def handler(request):
        return httpx.Response(200, json={"status": "ok", "results": []})

    provider = NewsProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_trending())

    assert result.error is ErrorKind.MALFORMED_RESPONSE


def test_transport_timeout_is_timeout_error():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    provider = NewsProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_trending())

    assert result.error is ErrorKind.TIMEOUT


def test_empty_search_query_is_configuration_error():
    provider = NewsProvider(make_config(), client=mock_client(lambda request: httpx.Response(200)))
    result = asyncio.run(provider.fetch_by_native_query("   "))

    assert result.error is ErrorKind.CONFIGURATION_ERROR


def test_empty_topics_is_configuration_error():
    provider = SocialProvider(make_config(), client=mock_client(lambda request: httpx.Response(200)))
    result = asyncio.run(provider.fetch_by_topics([]))

    assert result.error is ErrorKind.CONFIGURATION_ERROR


def test_rate_limit_delay_between_native_calls(monkeypatch):
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr(base.asyncio, "sleep", fake_sleep)
    cfg = make_config()
    cfg.news.rate_limit_delay = 1.0

    def handler(request):
        return httpx.Response(200, json={"status": "ok", "articles": []})

    provider = NewsProvider(cfg, client=mock_client(handler))
    result = asyncio.run(
        provider.fetch_by_topics([Topic.TECHNOLOGY, Topic.SCIENCE, Topic.BUSINESS])
    )

    assert result.ok is True
    assert result.items == ()
    assert sleeps == [1.0, 1.0]


# -- media ---------------------------------------------------------------


def test_media_unauthorized_is_configuration_error():
    def handler(request):
        return httpx.Response(401, json={"status_message": "Invalid API key", "status_code": 7})

    provider = MediaProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.MOVIES]))

    assert result.error is ErrorKind.CONFIGURATION_ERROR
    assert "Invalid API key" in result.message


def test_media_movie_transform():
    def handler(request):
        assert request.url.path == "/3/trending/movie/week"
        assert request.url.params["api_key"] == "tmdb-key"
        return httpx.Response(
            200,
            json={
                "results": [
                    {
                        "id": 42,
                        "title": "Dune",
                        "overview": "Spice",
                        "poster_path": "/p.jpg",
                        "backdrop_path": "/b.jpg",
                        "release_date": "2024-03-01",
                        "vote_average": 7.3,
                        "vote_count": 900,
                        "genre_ids": [878, 12],
                        "popularity": 99.5,
                    }
                ]
            },
        )

    provider = MediaProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.MOVIES]))

    assert result.ok is True
    item = result.items[0]
    assert item.id == "media:movie:42"
    assert item.provider_id == "42"
    assert item.topics == (Topic.SCIENCE, Topic.MOVIES)
    assert item.primary_topic is Topic.SCIENCE
    assert item.engagement_score == 73
    assert item.image_url == "https://image.tmdb.org/t/p/w500/p.jpg"
    assert item.extras.backdrop_url == "https://image.tmdb.org/t/p/w1280/b.jpg"
    assert item.extras.genre_names == ("Science Fiction", "Adventure")
    assert item.published_at.year == 2024


def test_media_tv_is_always_tagged_tv_shows():
    requested = []

    def handler(request):
        requested.append(request.url.path)
        return httpx.Response(
            200,
            json={"results": [{"id": 7, "name": "Show", "first_air_date": "2023-01-01", "genre_ids": [35]}]},
        )

    provider = MediaProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.TV_SHOWS]))

    assert requested == ["/3/trending/tv/week"]
    item = result.items[0]
    assert item.id == "media:tv:7"
    assert item.primary_topic is Topic.TV_SHOWS
    assert item.topics == (Topic.TV_SHOWS, Topic.ENTERTAINMENT)


def test_media_tolerates_mistyped_fields():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "results": [
                    {"id": 8, "title": "Odd", "genre_ids": 5, "vote_average": "n/a", "vote_count": "many"},
                    {"id": 9, "title": "Fine", "genre_ids": [28], "vote_average": 6.1},
                ]
            },
        )

    provider = MediaProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.MOVIES]))

    assert result.ok is True
    odd, fine = result.items
    assert odd.id == "media:movie:8"
    assert odd.primary_topic is Topic.MOVIES
    assert odd.engagement_score == 0
    assert odd.extras.vote_count == 0
    assert fine.engagement_score == 61


def test_media_popular_listings():
    requested = []

    def handler(request):
        requested.append(request.url.path)
        if request.url.path == "/3/tv/popular":
            return httpx.Response(200, json={"results": [{"id": 3, "name": "Series"}]})
        return httpx.Response(200, json={"results": [{"id": 4, "title": "Film"}]})

    provider = MediaProvider(make_config(), client=mock_client(handler))
    by_topics = asyncio.run(provider.fetch_by_topics([Topic.MOVIES, Topic.TV_SHOWS], FetchOptions(sort="popular")))
    trending = asyncio.run(provider.fetch_trending(FetchOptions(sort="popular", restrict_to="tv")))

    assert requested == ["/3/movie/popular", "/3/tv/popular", "/3/tv/popular"]
    assert [item.id for item in by_topics.items] == ["media:movie:4", "media:tv:3"]
    assert [item.id for item in trending.items] == ["media:tv:3"]


def test_media_trending_drops_people_and_adult_titles():
    def handler(request):
        assert request.url.path == "/3/trending/all/day"
        return httpx.Response(
            200,
            json={
                "results": [
                    {"id": 1, "media_type": "person", "name": "An Actor"},
                    {"id": 2, "media_type": "movie", "title": "Adult", "adult": True},
                    {"id": 3, "media_type": "tv", "name": "Series"},
                    {"id": 4, "media_type": "movie", "title": "Film"},
                ]
            },
        )

    provider = MediaProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_trending())

    assert [item.id for item in result.items] == ["media:tv:3", "media:movie:4"]


# -- social --------------------------------------------------------------


def test_social_skips_stickied_and_nsfw_posts():
    def handler(request):
        return httpx.Response(
            200,
            json=listing(
                reddit_post("a"),
                reddit_post("b", stickied=True),
                reddit_post("c", over_18=True),
            ),
        )

    provider = SocialProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_native_query("dune"))

    assert [item.id for item in result.items] == ["social:a"]
    item = result.items[0]
    assert item.primary_topic is Topic.MOVIES
    assert item.engagement_score == 120
    assert item.comment_count == 14
    assert item.source_url == "https://www.reddit.com/r/movies/comments/a/slug/"
    assert item.extras.post_type == "text"


def test_social_include_adult_keeps_nsfw_posts():
    def handler(request):
        return httpx.Response(200, json=listing(reddit_post("c", over_18=True)))

    provider = SocialProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_trending(FetchOptions(include_adult=True)))

    assert result.items[0].extras.is_nsfw is True


def test_social_partial_failure_reports_forbidden_subreddit():
    def handler(request):
        if request.url.path.startswith("/r/film/"):
            return httpx.Response(403, json={"reason": "private"})
        return httpx.Response(200, json=listing(reddit_post("m1")))

    provider = SocialProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.MOVIES]))

    assert result.ok is True
    assert [item.id for item in result.items] == ["social:m1"]
    assert "film: Subreddit is private or quarantined" in result.message


def test_social_all_subreddits_missing_is_not_found():
    def handler(request):
        return httpx.Response(404, json={"error": 404})

    provider = SocialProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.ANIME]))

    assert result.ok is False
    assert result.error is ErrorKind.NOT_FOUND


def test_social_fan_out_is_capped():
    requested = []

    def handler(request):
        requested.append(request.url.path)
        return httpx.Response(200, json=listing())

    provider = SocialProvider(make_config(), client=mock_client(handler))
    topics = [Topic.TECHNOLOGY, Topic.SCIENCE, Topic.MOVIES, Topic.GAMING, Topic.MUSIC]
    result = asyncio.run(provider.fetch_by_topics(topics))

    assert result.ok is True
    assert requested == [
        "/r/technology/hot.json",
        "/r/tech/hot.json",
        "/r/science/hot.json",
        "/r/space/hot.json",
        "/r/movies/hot.json",
        "/r/film/hot.json",
    ]


def test_social_topic_follows_requested_subreddit():
    def handler(request):
        return httpx.Response(200, json=listing(reddit_post("g1", subreddit="Gadgets")))

    provider = SocialProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.TECHNOLOGY]))

    assert {item.primary_topic for item in result.items} == {Topic.TECHNOLOGY}
    assert result.duration_ms >= 0


def test_social_mistyped_post_fields_do_not_fail_fan_out():
    def handler(request):
        if request.url.path.startswith("/r/film/"):
            odd = reddit_post(
                "f1",
                subreddit="film",
                is_self=False,
                preview={"images": [{"source": "oops"}]},
                thumbnail=5,
                url=None,
                score="lots",
            )
            return httpx.Response(200, json=listing(odd))
        return httpx.Response(200, json=listing(reddit_post("m1")))

    provider = SocialProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.MOVIES]))

    assert result.ok is True
    assert result.message is None
    assert [item.id for item in result.items] == ["social:m1", "social:f1"]
    odd = result.items[1]
    assert odd.image_url is None
    assert odd.engagement_score == 0


def test_record_that_cannot_be_transformed_is_dropped(monkeypatch):
    real_transform = social.transform_post

    def transform(post, subreddit, fetched_at):
        if post["id"] == "bad":
            raise AttributeError("'str' object has no attribute 'get'")
        return real_transform(post, subreddit, fetched_at)

    monkeypatch.setattr(social, "transform_post", transform)

    def handler(request):
        if request.url.path.startswith("/r/film/"):
            return httpx.Response(200, json=listing(reddit_post("bad"), reddit_post("f2")))
        return httpx.Response(200, json=listing(reddit_post("m1")))

    provider = SocialProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_topics([Topic.MOVIES]))

    assert result.ok is True
    assert [item.id for item in result.items] == ["social:m1", "social:f2"]


def test_news_mistyped_article_fields_are_tolerated():
    odd = article("Odd", "https://example.com/odd")
    odd.update(source={"name": 7}, author=["a", "b"], urlToImage=3)

    def handler(request):
        return httpx.Response(200, json={"status": "ok", "articles": [odd]})

    provider = NewsProvider(make_config(), client=mock_client(handler))
    result = asyncio.run(provider.fetch_by_native_query("odd"))

    item = result.items[0]
    assert item.extras.source_site is None
    assert item.author is None
    assert item.image_url is None


def test_numeric_coercion_helpers():
    assert base.as_float("2.5") == 2.5
    assert base.as_float(float("nan")) == 0.0
    assert base.as_float(True, default=1.0) == 1.0
    assert base.as_int("many", default=3) == 3
    assert base.as_str(5) == ""
