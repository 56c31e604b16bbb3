"""
Topic taxonomy and provider category mappings.

Every upstream classifies its content in its own vocabulary: NewsAPI uses a
handful of headline categories, TMDB uses numeric genre ids and Reddit uses
subreddit names. This module maps all of them onto one closed set of topics
so that preferences and engagement can be expressed once.

All lookups are total. An unknown native identifier is not an error; it
resolves to the provider's fallback topic.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Provider(str, Enum):
    """Closed set of upstream content providers."""

    NEWS = "news"
    MEDIA = "media"
    SOCIAL = "social"


class Topic(str, Enum):
    """Closed topic taxonomy. Declaration order is significant for tie-breaks."""

    # News & information
    TECHNOLOGY = "technology"
    SCIENCE = "science"
    BUSINESS = "business"
    FINANCE = "finance"
    POLITICS = "politics"
    WORLD = "world"
    HEALTH = "health"

    # Entertainment
    ENTERTAINMENT = "entertainment"
    MOVIES = "movies"
    TV_SHOWS = "tv_shows"
    MUSIC = "music"
    GAMING = "gaming"
    ANIME = "anime"

    # Lifestyle
    SPORTS = "sports"
    FOOD = "food"
    TRAVEL = "travel"
    FASHION = "fashion"
    ART = "art"

    # Learning & discussion
    PROGRAMMING = "programming"
    DESIGN = "design"
    EDUCATION = "education"
    DISCUSSION = "discussion"


@dataclass(frozen=True)
class TopicMeta:
    label: str
    icon: str
    color: str


TOPIC_META: dict[Topic, TopicMeta] = {
    Topic.TECHNOLOGY: TopicMeta("Technology", "Cpu", "#3b82f6"),
    Topic.SCIENCE: TopicMeta("Science", "Flask", "#8b5cf6"),
    Topic.BUSINESS: TopicMeta("Business", "Briefcase", "#6366f1"),
    Topic.FINANCE: TopicMeta("Finance", "DollarSign", "#10b981"),
    Topic.POLITICS: TopicMeta("Politics", "Landmark", "#ef4444"),
    Topic.WORLD: TopicMeta("World", "Globe", "#0ea5e9"),
    Topic.HEALTH: TopicMeta("Health", "Heart", "#ec4899"),
    Topic.ENTERTAINMENT: TopicMeta("Entertainment", "Sparkles", "#f59e0b"),
    Topic.MOVIES: TopicMeta("Movies", "Film", "#f97316"),
    Topic.TV_SHOWS: TopicMeta("TV Shows", "Tv", "#84cc16"),
    Topic.MUSIC: TopicMeta("Music", "Music", "#a855f7"),
    Topic.GAMING: TopicMeta("Gaming", "Gamepad2", "#22c55e"),
    Topic.ANIME: TopicMeta("Anime", "Cherry", "#f43f5e"),
    Topic.SPORTS: TopicMeta("Sports", "Trophy", "#eab308"),
    Topic.FOOD: TopicMeta("Food", "UtensilsCrossed", "#f97316"),
    Topic.TRAVEL: TopicMeta("Travel", "Plane", "#06b6d4"),
    Topic.FASHION: TopicMeta("Fashion", "Shirt", "#d946ef"),
    Topic.ART: TopicMeta("Art", "Palette", "#f472b6"),
    Topic.PROGRAMMING: TopicMeta("Programming", "Code", "#14b8a6"),
    Topic.DESIGN: TopicMeta("Design", "Figma", "#8b5cf6"),
    Topic.EDUCATION: TopicMeta("Education", "GraduationCap", "#0284c7"),
    Topic.DISCUSSION: TopicMeta("Discussion", "MessageCircle", "#64748b"),
}

DEFAULT_TOPICS: tuple[Topic, ...] = (
    Topic.TECHNOLOGY,
    Topic.ENTERTAINMENT,
    Topic.MOVIES,
    Topic.SCIENCE,
    Topic.GAMING,
)

FALLBACK_TOPICS: dict[Provider, Topic] = {
    Provider.NEWS: Topic.WORLD,
    Provider.MEDIA: Topic.MOVIES,
    Provider.SOCIAL: Topic.DISCUSSION,
}

# NewsAPI top-headline categories, in the order the API documents them.
NEWS_CATEGORIES: tuple[str, ...] = (
    "general",
    "business",
    "entertainment",
    "health",
    "science",
    "sports",
    "technology",
)

NEWS_CATEGORY_TO_TOPIC: dict[str, Topic] = {
    "technology": Topic.TECHNOLOGY,
    "science": Topic.SCIENCE,
    "business": Topic.BUSINESS,
    "entertainment": Topic.ENTERTAINMENT,
    "sports": Topic.SPORTS,
    "health": Topic.HEALTH,
    "general": Topic.WORLD,
}

MEDIA_GENRE_TO_TOPIC: dict[int, Topic] = {
    28: Topic.MOVIES,  # Action
    12: Topic.MOVIES,  # Adventure
    16: Topic.ANIME,  # Animation
    35: Topic.ENTERTAINMENT,  # Comedy
    80: Topic.MOVIES,  # Crime
    99: Topic.EDUCATION,  # Documentary
    18: Topic.MOVIES,  # Drama
    10751: Topic.ENTERTAINMENT,  # Family
    14: Topic.MOVIES,  # Fantasy
    36: Topic.EDUCATION,  # History
    27: Topic.MOVIES,  # Horror
    10402: Topic.MUSIC,  # Music
    9648: Topic.MOVIES,  # Mystery
    10749: Topic.ENTERTAINMENT,  # Romance
    878: Topic.SCIENCE,  # Science Fiction
    10770: Topic.TV_SHOWS,  # TV Movie
    53: Topic.MOVIES,  # Thriller
    10752: Topic.MOVIES,  # War
    37: Topic.MOVIES,  # Western
}

MEDIA_GENRE_NAMES: dict[int, str] = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Science Fiction",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
    # TV-only genres
    10759: "Action & Adventure",
    10762: "Kids",
    10763: "News",
    10764: "Reality",
    10765: "Sci-Fi & Fantasy",
    10766: "Soap",
    10767: "Talk",
    10768: "War & Politics",
}

# Topics that make the media provider pull each of its trending lists.
MEDIA_TYPE_TOPICS: dict[str, frozenset[Topic]] = {
    "movie": frozenset({Topic.MOVIES, Topic.ENTERTAINMENT, Topic.SCIENCE}),
    "tv": frozenset({Topic.TV_SHOWS, Topic.ENTERTAINMENT, Topic.ANIME}),
}

SUBREDDIT_TO_TOPIC: dict[str, Topic] = {
    "technology": Topic.TECHNOLOGY,
    "programming": Topic.PROGRAMMING,
    "webdev": Topic.PROGRAMMING,
    "javascript": Topic.PROGRAMMING,
    "reactjs": Topic.PROGRAMMING,
    "science": Topic.SCIENCE,
    "movies": Topic.MOVIES,
    "television": Topic.TV_SHOWS,
    "gaming": Topic.GAMING,
    "music": Topic.MUSIC,
    "worldnews": Topic.WORLD,
    "news": Topic.WORLD,
    "sports": Topic.SPORTS,
    "art": Topic.ART,
    "design": Topic.DESIGN,
    "food": Topic.FOOD,
    "travel": Topic.TRAVEL,
    "anime": Topic.ANIME,
    "fitness": Topic.HEALTH,
    "personalfinance": Topic.FINANCE,
}

TOPIC_TO_SUBREDDITS: dict[Topic, tuple[str, ...]] = {
    Topic.TECHNOLOGY: ("technology", "tech", "gadgets"),
    Topic.SCIENCE: ("science", "space", "physics"),
    Topic.BUSINESS: ("business", "entrepreneur", "startups"),
    Topic.FINANCE: ("personalfinance", "investing", "stocks"),
    Topic.POLITICS: ("politics", "worldpolitics"),
    Topic.WORLD: ("worldnews", "news"),
    Topic.HEALTH: ("health", "fitness", "nutrition"),
    Topic.ENTERTAINMENT: ("entertainment", "celebrities"),
    Topic.MOVIES: ("movies", "film", "cinema"),
    Topic.TV_SHOWS: ("television", "tvshows"),
    Topic.MUSIC: ("music", "listentothis"),
    Topic.GAMING: ("gaming", "games", "pcgaming"),
    Topic.ANIME: ("anime", "manga"),
    Topic.SPORTS: ("sports", "nba", "soccer"),
    Topic.FOOD: ("food", "cooking", "recipes"),
    Topic.TRAVEL: ("travel", "backpacking"),
    Topic.FASHION: ("fashion", "streetwear"),
    Topic.ART: ("art", "digitalart", "illustration"),
    Topic.PROGRAMMING: ("programming", "webdev", "javascript", "reactjs"),
    Topic.DESIGN: ("design", "web_design", "UI_Design"),
    Topic.EDUCATION: ("education", "learnprogramming"),
    Topic.DISCUSSION: ("askreddit", "todayilearned"),
}


# Every subreddit queried for a topic maps back to it; explicit entries win.
_SUBREDDIT_INDEX: dict[str, Topic] = {
    name.lower(): topic for topic, names in TOPIC_TO_SUBREDDITS.items() for name in reversed(names)
}
_SUBREDDIT_INDEX.update(SUBREDDIT_TO_TOPIC)


def map_provider_category(provider: Provider, native: str | int | None) -> Topic:
    """Map a provider-native category, genre id or community name to a topic.

    Args:
        provider: The provider the identifier belongs to
        native: News category name, TMDB genre id or subreddit name

    Returns:
        The mapped topic, or the provider's fallback topic when unmapped
    """
    provider = Provider(provider)
    fallback = FALLBACK_TOPICS[provider]
    if native is None:
        return fallback
    if provider is Provider.NEWS:
        return NEWS_CATEGORY_TO_TOPIC.get(str(native).lower(), fallback)
    if provider is Provider.MEDIA:
        try:
            genre_id = int(native)
        except (TypeError, ValueError):
            return fallback
        return MEDIA_GENRE_TO_TOPIC.get(genre_id, fallback)
    return _SUBREDDIT_INDEX.get(str(native).lower(), fallback)


def map_genres(genre_ids: list[int] | tuple[int, ...] | None) -> list[Topic]:
    """Map a list of TMDB genre ids to distinct topics, preserving first-seen order."""
    topics: list[Topic] = []
    for genre_id in genre_ids or ():
        topic = MEDIA_GENRE_TO_TOPIC.get(genre_id)
        if topic is not None and topic not in topics:
            topics.append(topic)
    if not topics:
        topics.append(FALLBACK_TOPICS[Provider.MEDIA])
    return topics


def genre_name(genre_id: int) -> str:
    return MEDIA_GENRE_NAMES.get(genre_id, "Unknown")


def subjects_for_topic(provider: Provider, topic: Topic) -> list[str]:
    """Reverse lookup: provider-native identifiers to query for a topic.

    Returns news categories, media list types ("movie"/"tv") or subreddit
    names. An empty list means the provider has nothing specific for it.
    """
    provider = Provider(provider)
    topic = Topic(topic)
    if provider is Provider.NEWS:
        return [name for name in NEWS_CATEGORIES if NEWS_CATEGORY_TO_TOPIC.get(name) is topic]
    if provider is Provider.MEDIA:
        return [media_type for media_type, wanted in MEDIA_TYPE_TOPICS.items() if topic in wanted]
    return list(TOPIC_TO_SUBREDDITS.get(topic, ()))


def topic_info(topic: Topic) -> TopicMeta:
    return TOPIC_META.get(Topic(topic), TopicMeta(str(topic), "Tag", "#6b7280"))


def all_topics() -> list[dict[str, str]]:
    """Return every topic with its display metadata, in declaration order."""
    result = []
    for topic in Topic:
        meta = TOPIC_META[topic]
        result.append({"id": topic.value, "label": meta.label, "icon": meta.icon, "color": meta.color})
    return result


def parse_topics(values: list[str] | tuple[str, ...] | None) -> list[Topic]:
    """Parse topic strings, silently dropping unknown values and duplicates."""
    topics: list[Topic] = []
    for value in values or ():
        try:
            topic = Topic(str(value).strip().lower())
        except ValueError:
            continue
        if topic not in topics:
            topics.append(topic)
    return topics
