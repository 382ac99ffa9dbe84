import logging
import re
from enum import Enum
from typing import Any, Callable

try:
    from backend.app.models import ChannelCandidate, ChannelSearchResult, Fault
    from backend.app.services.youtube_api import YouTubeApiClient, YouTubeApiError, fault_code
except ModuleNotFoundError:
    from app.models import ChannelCandidate, ChannelSearchResult, Fault
    from app.services.youtube_api import YouTubeApiClient, YouTubeApiError, fault_code

logger = logging.getLogger(__name__)

CHANNEL_ID_RE = re.compile(r"^UC[a-zA-Z0-9_-]{22}$")

# Checked in order; the canonical /channel/ form must come first.
CHANNEL_URL_PATTERNS = [
    re.compile(r"(?:https?://)?(?:www\.)?youtube\.com/channel/([a-zA-Z0-9_-]+)"),
    re.compile(r"(?:https?://)?(?:www\.)?youtube\.com/c/([a-zA-Z0-9_-]+)"),
    re.compile(r"(?:https?://)?(?:www\.)?youtube\.com/user/([a-zA-Z0-9_-]+)"),
    re.compile(r"(?:https?://)?(?:www\.)?youtube\.com/@([a-zA-Z0-9_-]+)"),
]
HANDLE_URL_PATTERN = CHANNEL_URL_PATTERNS[-1]

HANDLE_MARKER = "@"
DIRECT_MATCH_SCORE = 1000
DIRECT_MATCH_TYPE = "Direct URL/ID"
BEST_MATCH_MIN_SCORE = 80
GOOD_MATCH_MIN_SCORE = 40

NO_RESULTS_SUGGESTIONS = [
    "Try using the exact channel name",
    "Use @ symbol for handles (e.g., @channelname)",
    "Try a partial match or broader terms",
    "Check if the channel URL/ID is correct",
]


class SearchStrategy(str, Enum):
    EXACT = "exact"
    HANDLE = "handle"
    GENERAL = "general"
    SMART = "smart"


def is_channel_id(value: str) -> bool:
    return bool(CHANNEL_ID_RE.match(value or ""))


def extract_direct_identifier(value: str) -> str:
    """
    Pull a channel id, legacy name or handle out of a pasted URL.
    Anything unrecognised comes back untouched and is used as a search query.
    """
    if is_channel_id(value):
        return value
    _pattern, match = _match_channel_url(value)
    return match.group(1) if match else value


def _match_channel_url(value: str) -> tuple[re.Pattern | None, re.Match | None]:
    for pattern in CHANNEL_URL_PATTERNS:
        match = pattern.search(value)
        if match:
            return pattern, match
    return None, None


def search_term(value: str) -> str:
    """Text to search and score with. A /@name URL keeps its handle marker."""
    identifier = extract_direct_identifier(value)
    if identifier != value:
        pattern, _match = _match_channel_url(value)
        if pattern is HANDLE_URL_PATTERN:
            return f"{HANDLE_MARKER}{identifier}"
    return identifier


def _strip_handle(query: str) -> str:
    return query[1:] if query.startswith(HANDLE_MARKER) else query


def exact_queries(query: str) -> list[str]:
    queries = [f'"{query}"']
    if query.startswith(HANDLE_MARKER):
        queries.append(f'"{_strip_handle(query)}"')
    return queries


def handle_queries(query: str) -> list[str]:
    if query.startswith(HANDLE_MARKER):
        return [_strip_handle(query)]
    return [f"{HANDLE_MARKER}{query}"]


def general_queries(query: str) -> list[str]:
    return [query]


STRATEGY_QUERIES: dict[SearchStrategy, Callable[[str], list[str]]] = {
    SearchStrategy.EXACT: exact_queries,
    SearchStrategy.HANDLE: handle_queries,
    SearchStrategy.GENERAL: general_queries,
}

# Precision first: broad search only runs when the narrower ones come back empty.
SMART_ORDER = (SearchStrategy.EXACT, SearchStrategy.HANDLE, SearchStrategy.GENERAL)


def strategy_plan(strategy: SearchStrategy) -> tuple[SearchStrategy, ...]:
    if strategy == SearchStrategy.SMART:
        return SMART_ORDER
    return (strategy,)


def _to_count(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        count = int(value)
    except (TypeError, ValueError):
        return None
    return count if count >= 0 else None


def popularity_bonus(subscriber_count: int | None) -> int:
    subscribers = subscriber_count or 0
    if subscribers > 1_000_000:
        return 20
    if subscribers > 100_000:
        return 10
    if subscribers > 10_000:
        return 5
    return 0


def score_channel(
    title: str | None,
    custom_url: str | None,
    description: str | None,
    subscriber_count: Any,
    query: str,
) -> int:
    title_l = (title or "").lower()
    custom_url_l = (custom_url or "").lower()
    description_l = (description or "").lower()
    query_l = query.lower()
    stripped = _strip_handle(query_l)

    score = 0
    if title_l == query_l:
        score += 100
    elif query_l in title_l:
        score += 50

    if custom_url_l == query_l or custom_url_l == stripped:
        score += 90
    elif stripped in custom_url_l:
        score += 40

    if query_l.startswith(HANDLE_MARKER):
        if custom_url_l == stripped:
            score += 95
        if title_l == stripped:
            score += 85

    if query_l in description_l:
        score += 10

    return score + popularity_bonus(_to_count(subscriber_count))


def classify_match(score: int) -> str:
    if score >= BEST_MATCH_MIN_SCORE:
        return "Best Match"
    if score >= GOOD_MATCH_MIN_SCORE:
        return "Good Match"
    return "Possible Match"


def candidate_from_channel(channel: dict[str, Any]) -> ChannelCandidate:
    snippet = channel.get("snippet") or {}
    statistics = channel.get("statistics") or {}
    return ChannelCandidate(
        id=channel.get("id") or "",
        title=snippet.get("title") or "",
        description=snippet.get("description") or "",
        custom_url=snippet.get("customUrl"),
        thumbnails=snippet.get("thumbnails") or {},
        subscriber_count=_to_count(statistics.get("subscriberCount")),
        video_count=_to_count(statistics.get("videoCount")),
        view_count=_to_count(statistics.get("viewCount")),
        hidden_subscriber_count=bool(statistics.get("hiddenSubscriberCount")),
    )


def rank_channels(raw_channels: list[dict[str, Any]], query: str, limit: int = 10) -> list[ChannelCandidate]:
    seen_ids: set[str] = set()
    candidates: list[ChannelCandidate] = []
    for channel in raw_channels:
        channel_id = channel.get("id")
        if not channel_id or channel_id in seen_ids:
            continue
        seen_ids.add(channel_id)
        candidate = candidate_from_channel(channel)
        candidate.relevance_score = score_channel(
            candidate.title,
            candidate.custom_url,
            candidate.description,
            candidate.subscriber_count,
            query,
        )
        candidate.match_type = classify_match(candidate.relevance_score)
        candidates.append(candidate)

    # sorted() is stable, so equal scores keep upstream order.
    ranked = sorted(candidates, key=lambda c: c.relevance_score, reverse=True)
    return ranked[:limit]


def _search_hit_channel_id(item: dict[str, Any]) -> str | None:
    return (item.get("id") or {}).get("channelId") or (item.get("snippet") or {}).get("channelId")


class ChannelResolver:
    def __init__(self, client: YouTubeApiClient, results_per_query: int = 25, result_limit: int = 10):
        self.client = client
        self.results_per_query = results_per_query
        self.result_limit = result_limit

    def _run_query(self, search_query: str, strategy: SearchStrategy, faults: list[Fault]) -> list[dict[str, Any]]:
        try:
            hits = self.client.search_channels(search_query, max_results=self.results_per_query)
            channel_ids = [cid for cid in (_search_hit_channel_id(hit) for hit in hits) if cid]
            if not channel_ids:
                return []
            # search.list has no statistics, so a second call is always needed.
            return self.client.list_channels(channel_ids, part="snippet,statistics")
        except YouTubeApiError as exc:
            logger.warning(
                "Search strategy %s with query %r failed: %s", strategy.value, search_query, exc.message
            )
            faults.append(
                Fault(
                    stage="search",
                    code=fault_code(exc),
                    detail=exc.message,
                    context={"strategy": strategy.value, "query": search_query},
                )
            )
            return []

    def search_strategy(self, query: str, strategy: SearchStrategy, faults: list[Fault]) -> list[dict[str, Any]]:
        channels: list[dict[str, Any]] = []
        for search_query in STRATEGY_QUERIES[strategy](query):
            channels.extend(self._run_query(search_query, strategy, faults))
        return channels

    def search(
        self, query: str, strategy: SearchStrategy = SearchStrategy.SMART
    ) -> tuple[list[dict[str, Any]], list[str], list[Fault]]:
        """
        Run the strategy (or the smart chain) and return the raw channel
        resources, the strategy names tried, and any absorbed failures.
        """
        faults: list[Fault] = []
        tried: list[str] = []
        raw_channels: list[dict[str, Any]] = []
        for step in strategy_plan(strategy):
            tried.append(step.value)
            found = self.search_strategy(query, step, faults)
            raw_channels.extend(found)
            if found and strategy == SearchStrategy.SMART:
                break
        return raw_channels, tried, faults

    def lookup_direct(self, channel_id: str) -> ChannelCandidate | None:
        items = self.client.list_channels(channel_id, part="snippet,statistics")
        if not items:
            return None
        candidate = candidate_from_channel(items[0])
        candidate.relevance_score = DIRECT_MATCH_SCORE
        candidate.match_type = DIRECT_MATCH_TYPE
        return candidate

    def resolve(self, query: str, strategy: SearchStrategy = SearchStrategy.SMART) -> ChannelSearchResult:
        query = (query or "").strip()
        identifier = extract_direct_identifier(query)
        if is_channel_id(identifier):
            logger.info("Direct channel ID detected: %s", identifier)
            direct = self.lookup_direct(identifier)
            if direct is not None:
                return ChannelSearchResult(
                    candidates=[direct],
                    direct_match=True,
                    original_query=query,
                )
            logger.info("Channel %s not found, falling back to search", identifier)

        term = search_term(query)
        logger.info("Searching for channels with query %r, strategy %s", term, strategy.value)
        raw_channels, tried, faults = self.search(term, strategy)
        candidates = rank_channels(raw_channels, term, limit=self.result_limit)
        return ChannelSearchResult(
            candidates=candidates,
            direct_match=False,
            original_query=query,
            strategies=tried,
            suggestions=[] if candidates else list(NO_RESULTS_SUGGESTIONS),
            faults=faults,
        )
