"""
Reddit social provider.

Reads public subreddit listings, r/popular and search results from the
Reddit JSON endpoints. No credentials are needed. Stickied posts are always
skipped; NSFW posts are skipped unless the caller opts in.
"""

from __future__ import annotations

from datetime import datetime
import logging
import re
from typing import Any

import httpx

from ..config import AppConfig
from ..core.taxonomy import Provider, Topic, map_provider_category, subjects_for_topic
from ..core.types import CanonicalContent, ErrorKind, FetchOptions, SocialExtras, utc_now
from ..utils.dates import parse_epoch_seconds
from .base import ContentProvider, as_float, as_int, as_str, classify_status, expect_list

DEFAULT_SUBREDDITS = ("technology", "programming", "movies")
TRENDING_SUBREDDIT = "popular"
DESCRIPTION_CHARS = 300

_IMAGE_URL_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)
_PLACEHOLDER_THUMBNAILS = {"self", "default", "nsfw", "spoiler", "image", ""}


def _unescape(url: str) -> str:
    return url.replace("&amp;", "&")


def post_type(post: dict[str, Any]) -> str:
    if post.get("is_self"):
        return "text"
    if post.get("is_video"):
        return "video"
    if post.get("is_gallery"):
        return "gallery"
    if post.get("post_hint") == "image" or _IMAGE_URL_RE.search(as_str(post.get("url"))):
        return "image"
    return "link"


def extract_image(post: dict[str, Any]) -> str | None:
    """Pick the best single image for a post: preview, then thumbnail, then direct image URL."""
    preview = post.get("preview")
    if isinstance(preview, dict):
        images = preview.get("images")
        if isinstance(images, list) and images and isinstance(images[0], dict):
            source = images[0].get("source")
            if isinstance(source, dict) and as_str(source.get("url")):
                return _unescape(source["url"])

    thumbnail = as_str(post.get("thumbnail"))
    if thumbnail not in _PLACEHOLDER_THUMBNAILS and thumbnail.startswith("http"):
        return thumbnail

    url = as_str(post.get("url"))
    if _IMAGE_URL_RE.search(url):
        return url
    return None


def extract_gallery_images(post: dict[str, Any]) -> list[str]:
    metadata = post.get("media_metadata")
    if not post.get("is_gallery") or not isinstance(metadata, dict):
        return []
    gallery = post.get("gallery_data")
    items = gallery.get("items") if isinstance(gallery, dict) else None
    images: list[str] = []
    for item in items if isinstance(items, list) else ():
        media = metadata.get(item.get("media_id")) if isinstance(item, dict) else None
        source = media.get("s") if isinstance(media, dict) else None
        url = as_str(source.get("u")) if isinstance(source, dict) else ""
        if url:
            images.append(_unescape(url))
    return images



def is_valid_post(post: Any, include_adult: bool = False) -> bool:
    if not isinstance(post, dict):
        return False
    if post.get("stickied"):
        return False
    if post.get("over_18") and not include_adult:
        return False
    title = post.get("title")
    return bool(post.get("id")) and isinstance(title, str) and bool(title.strip())


def transform_post(post: dict[str, Any], subreddit: str, fetched_at: datetime) -> CanonicalContent:
    """Normalize one Reddit post.

    ``subreddit`` is the community the post was requested from; it decides
    the topic. Listings that span communities pass the post's own subreddit.
    """
    topic = map_provider_category(Provider.SOCIAL, subreddit)
    image = extract_image(post)
    gallery = extract_gallery_images(post)
    images = gallery or ([image] if image else [])
    selftext = as_str(post.get("selftext"))
    permalink = as_str(post.get("permalink"))
    score = post.get("score")
    comments = post.get("num_comments")

    return CanonicalContent(
        id=CanonicalContent.make_id(Provider.SOCIAL, str(post["id"])),
        provider=Provider.SOCIAL,
        provider_id=str(post["id"]),
        source_url=f"https://www.reddit.com{permalink}" if permalink else as_str(post.get("url")),
        title=post["title"].strip(),
        description=selftext[:DESCRIPTION_CHARS] or None,
        body=selftext or None,
        thumbnail_url=image,
        image_url=image,
        image_urls=tuple(images),
        author=as_str(post.get("author")) or None,
        published_at=parse_epoch_seconds(post.get("created_utc"), fetched_at),
        fetched_at=fetched_at,
        topics=(topic,),
        primary_topic=topic,
        engagement_score=as_float(score) if score is not None else None,
        comment_count=as_int(comments) if comments is not None else None,
        extras=SocialExtras(
            subreddit=as_str(post.get("subreddit")) or subreddit,
            subreddit_id=as_str(post.get("subreddit_id")),
            upvotes=as_int(post.get("ups")),
            downvotes=as_int(post.get("downs")),
            upvote_ratio=as_float(post.get("upvote_ratio")),
            is_nsfw=bool(post.get("over_18")),
            is_spoiler=bool(post.get("spoiler")),
            flair=as_str(post.get("link_flair_text")) or None,
            post_type=post_type(post),
            permalink=permalink,
        ),
    )


class SocialProvider(ContentProvider):
    """Reddit adapter: one listing request per subreddit."""

    name = Provider.SOCIAL

    def __init__(
        self,
        cfg: AppConfig,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ):
        super().__init__(cfg, client, logger)
        self._cfg = cfg.social
        self.rate_limit_delay = cfg.social.rate_limit_delay

    def native_subjects(self, topics: list[Topic]) -> list[str]:
        subreddits: list[str] = []
        for topic in topics:
            for subreddit in subjects_for_topic(Provider.SOCIAL, topic)[: self._cfg.subreddits_per_topic]:
                if subreddit not in subreddits:
                    subreddits.append(subreddit)
        if not subreddits:
            subreddits = list(DEFAULT_SUBREDDITS)
        return subreddits[: self._cfg.max_subreddits]

    def classify_failure(self, status_code: int, payload: Any) -> tuple[ErrorKind, str]:
        if status_code == 404:
            return ErrorKind.NOT_FOUND, "Subreddit not found"
        if status_code == 403:
            return ErrorKind.FORBIDDEN, "Subreddit is private or quarantined"
        return classify_status(status_code), f"Reddit API error: {status_code}"

    async def _fetch_subject(self, subject: str, options: FetchOptions) -> list[CanonicalContent]:
        sort = options.sort or self._cfg.listing_sort
        params: dict[str, Any] = {"limit": self._limit(options), "raw_json": 1}
        if sort == "top":
            params["t"] = options.time_window or self._cfg.time_filter
        payload = await self._get_json(f"{self._cfg.base_url}/r/{subject}/{sort}.json", params)
        return self._parse_listing(payload, options, subreddit=subject)

    async def _trending(self, options: FetchOptions) -> list[CanonicalContent]:
        params = {"limit": self._limit(options), "raw_json": 1}
        payload = await self._get_json(f"{self._cfg.base_url}/r/{TRENDING_SUBREDDIT}/hot.json", params)
        return self._parse_listing(payload, options)

    async def _search(self, query: str, options: FetchOptions) -> list[CanonicalContent]:
        params = {
            "q": query,
            "sort": options.sort or "relevance",
            "t": options.time_window or "week",
            "limit": self._limit(options),
            "raw_json": 1,
            "type": "link",
        }
        if options.restrict_to:
            url = f"{self._cfg.base_url}/r/{options.restrict_to}/search.json"
            params["restrict_sr"] = 1
        else:
            url = f"{self._cfg.base_url}/search.json"
        payload = await self._get_json(url, params)
        return self._parse_listing(payload, options)

    def _parse_listing(
        self,
        payload: Any,
        options: FetchOptions,
        subreddit: str | None = None,
    ) -> list[CanonicalContent]:
        fetched_at = utc_now()
        children = expect_list(payload, "data", "children")
        posts = [child.get("data") if isinstance(child, dict) else None for child in children]
        return self._transform_records(
            posts,
            lambda post: is_valid_post(post, options.include_adult),
            lambda post: transform_post(post, subreddit or as_str(post.get("subreddit")), fetched_at),
        )

    def _limit(self, options: FetchOptions) -> int:
        return max(1, min(options.limit, self._cfg.max_limit))
