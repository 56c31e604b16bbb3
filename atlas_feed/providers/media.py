"""
TMDB media catalog provider.

Reads trending and popular movie and TV lists and movie/TV search results from
https://api.themoviedb.org and normalizes them into CanonicalContent.
Genre ids are mapped to topics; TV shows are always tagged ``tv_shows``.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

import httpx

from ..config import AppConfig, get_api_key
from ..core.taxonomy import Provider, Topic, genre_name, map_genres, subjects_for_topic
from ..core.types import CanonicalContent, ErrorKind, FetchOptions, MediaExtras, utc_now
from ..utils.dates import parse_iso_datetime
from .base import ContentProvider, as_float, as_int, as_str, classify_status, expect_list

MEDIA_TYPES = ("movie", "tv")
DEFAULT_MEDIA_TYPE = "movie"
POPULAR_SORT = "popular"

IMAGE_SIZES = {
    "poster": "w500",
    "backdrop": "w1280",
    "thumbnail": "w200",
}


def image_url(base_url: str, path: str | None, size: str = "poster") -> str | None:
    if not path:
        return None
    return f"{base_url}/{IMAGE_SIZES[size]}{path}"


def resolve_media_type(raw: dict[str, Any], requested: str) -> str | None:
    """Work out whether a record is a movie or a TV show.

    Mixed ("all") listings tag each record with ``media_type``; typed
    listings do not, so the requested list type is the fallback. Anything
    else (people, collections) yields None.
    """
    media_type = raw.get("media_type") or requested
    if media_type == "tv":
        return "tv"
    if media_type in ("movie", "all"):
        return "tv" if raw.get("name") and not raw.get("title") else "movie"
    return None


def is_valid_media(raw: Any, requested: str, include_adult: bool = False) -> bool:
    if not isinstance(raw, dict) or raw.get("id") is None:
        return False
    if raw.get("adult") and not include_adult:
        return False
    media_type = resolve_media_type(raw, requested)
    if media_type is None:
        return False
    title = raw.get("name") if media_type == "tv" else raw.get("title")
    return isinstance(title, str) and bool(title.strip())


def transform_media(
    raw: dict[str, Any],
    requested: str,
    fetched_at: datetime,
    image_base_url: str,
) -> CanonicalContent:
    """Normalize one TMDB movie or TV record."""
    media_type = resolve_media_type(raw, requested) or DEFAULT_MEDIA_TYPE
    is_tv = media_type == "tv"
    raw_genres = raw.get("genre_ids")
    genre_ids = tuple(g for g in raw_genres if isinstance(g, int)) if isinstance(raw_genres, list) else ()
    topics = map_genres(list(genre_ids))
    if is_tv:
        if Topic.TV_SHOWS not in topics:
            topics.insert(0, Topic.TV_SHOWS)
        primary = Topic.TV_SHOWS
    else:
        primary = topics[0]

    tmdb_id = str(raw["id"])
    title = as_str(raw.get("name") if is_tv else raw.get("title")) or "Untitled"
    release_date = as_str(raw.get("first_air_date") if is_tv else raw.get("release_date"))
    vote_average = as_float(raw.get("vote_average"))
    poster_path = as_str(raw.get("poster_path"))
    poster = image_url(image_base_url, poster_path, "poster")
    backdrop = image_url(image_base_url, as_str(raw.get("backdrop_path")), "backdrop")
    overview = as_str(raw.get("overview")) or None

    return CanonicalContent(
        id=CanonicalContent.make_id(Provider.MEDIA, f"{media_type}:{tmdb_id}"),
        provider=Provider.MEDIA,
        provider_id=tmdb_id,
        source_url=f"https://www.themoviedb.org/{media_type}/{tmdb_id}",
        title=title.strip(),
        description=overview,
        body=overview,
        thumbnail_url=image_url(image_base_url, poster_path, "thumbnail"),
        image_url=poster,
        image_urls=tuple(url for url in (poster, backdrop) if url),
        author=None,
        published_at=parse_iso_datetime(release_date, fetched_at),
        fetched_at=fetched_at,
        topics=tuple(topics),
        primary_topic=primary,
        engagement_score=round(vote_average * 10),
        comment_count=None,
        extras=MediaExtras(
            media_type=media_type,
            rating=vote_average,
            release_date=release_date,
            genre_ids=genre_ids,
            genre_names=tuple(genre_name(g) for g in genre_ids),
            popularity=as_float(raw.get("popularity")),
            vote_count=as_int(raw.get("vote_count")),
            backdrop_url=backdrop,
        ),
    )


class MediaProvider(ContentProvider):
    """TMDB adapter: one trending request per wanted media type."""

    name = Provider.MEDIA

    def __init__(
        self,
        cfg: AppConfig,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ):
        super().__init__(cfg, client, logger)
        self._cfg = cfg.media
        self.rate_limit_delay = cfg.media.rate_limit_delay

    def check_configuration(self) -> str | None:
        if get_api_key(self._cfg) is None:
            return f"{self._cfg.api_key_env} not configured. Get one at https://www.themoviedb.org/settings/api"
        return None

    def native_subjects(self, topics: list[Topic]) -> list[str]:
        wanted: set[str] = set()
        for topic in topics:
            wanted.update(subjects_for_topic(Provider.MEDIA, topic))
        return [media_type for media_type in MEDIA_TYPES if media_type in wanted] or [DEFAULT_MEDIA_TYPE]

    def classify_failure(self, status_code: int, payload: Any) -> tuple[ErrorKind, str]:
        message = f"TMDB API error: {status_code}"
        if isinstance(payload, dict) and payload.get("status_message"):
            message = f"{message} {payload['status_message']}"
        if status_code == 401:
            return ErrorKind.CONFIGURATION_ERROR, message
        return classify_status(status_code), message

    async def _fetch_subject(self, subject: str, options: FetchOptions) -> list[CanonicalContent]:
        if options.sort == POPULAR_SORT:
            return await self._list(f"/{subject}/popular", subject, options)
        window = options.time_window or self._cfg.time_window
        return await self._list(f"/trending/{subject}/{window}", subject, options)

    async def _trending(self, options: FetchOptions) -> list[CanonicalContent]:
        if options.sort == POPULAR_SORT:
            media_type = options.restrict_to if options.restrict_to in MEDIA_TYPES else DEFAULT_MEDIA_TYPE
            return await self._list(f"/{media_type}/popular", media_type, options)
        window = options.time_window or "day"
        return await self._list(f"/trending/all/{window}", "all", options)

    async def _search(self, query: str, options: FetchOptions) -> list[CanonicalContent]:
        media_type = options.restrict_to if options.restrict_to in MEDIA_TYPES else DEFAULT_MEDIA_TYPE
        return await self._list(f"/search/{media_type}", media_type, options, {"query": query})

    async def _list(
        self,
        path: str,
        requested: str,
        options: FetchOptions,
        extra_params: dict[str, Any] | None = None,
    ) -> list[CanonicalContent]:
        params: dict[str, Any] = {"api_key": get_api_key(self._cfg), "page": max(1, options.page)}
        if extra_params:
            params.update(extra_params)
        payload = await self._get_json(f"{self._cfg.base_url}{path}", params)
        fetched_at = utc_now()
        results = expect_list(payload, "results")
        items = self._transform_records(
            results,
            lambda raw: is_valid_media(raw, requested, options.include_adult),
            lambda raw: transform_media(raw, requested, fetched_at, self._cfg.image_base_url),
        )
        return items[: max(1, options.limit)]
