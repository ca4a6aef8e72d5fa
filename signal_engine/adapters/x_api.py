"""X API v2 recent-search client."""

from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from signal_engine.adapters.base import SocialAdapter
from signal_engine.adapters.schemas import EngagementMetrics, Post, SearchParams, UserProfile
from signal_engine.exceptions import AdapterError

logger = structlog.get_logger()

SEARCH_ENDPOINT = "/tweets/search/recent"
# The recent-search endpoint rejects max_results below 10
MIN_RESULTS = 10

TWEET_FIELDS = "id,text,author_id,created_at,lang,public_metrics,entities,referenced_tweets"
USER_FIELDS = "id,username,name,description,verified,public_metrics,created_at,profile_image_url,location,url"


def _parse_time(value: str | None) -> datetime:
    if not value:
        return datetime.fromtimestamp(0, UTC)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _iso(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def map_user(data: dict[str, Any]) -> UserProfile:
    metrics = data.get("public_metrics") or {}
    return UserProfile(
        id=data["id"],
        username=data.get("username", ""),
        display_name=data.get("name", ""),
        verified=bool(data.get("verified", False)),
        follower_count=metrics.get("followers_count", 0),
        following_count=metrics.get("following_count", 0),
        post_count=metrics.get("tweet_count", 0),
        created_at=_parse_time(data.get("created_at")),
        bio=data.get("description"),
        location=data.get("location"),
        url=data.get("url"),
        profile_image_url=data.get("profile_image_url"),
    )


def map_post(data: dict[str, Any], users: dict[str, UserProfile]) -> Post | None:
    """Map one tweet; None when its author is missing from ``includes.users``."""
    author = users.get(data.get("author_id", ""))
    if author is None:
        logger.warning("x_post_author_missing", post_id=data.get("id"), author_id=data.get("author_id"))
        return None

    metrics = data.get("public_metrics") or {}
    entities = data.get("entities") or {}
    refs = {ref["type"]: ref["id"] for ref in data.get("referenced_tweets") or []}

    return Post(
        id=data["id"],
        text=data.get("text", ""),
        author=author,
        created_at=_parse_time(data.get("created_at")),
        engagement=EngagementMetrics(
            likes=metrics.get("like_count", 0),
            retweets=metrics.get("retweet_count", 0),
            replies=metrics.get("reply_count", 0),
            quotes=metrics.get("quote_count", 0),
            impressions=metrics.get("impression_count"),
            bookmarks=metrics.get("bookmark_count"),
        ),
        language=data.get("lang"),
        is_retweet="retweeted" in refs,
        is_quote="quoted" in refs,
        in_reply_to_id=refs.get("replied_to"),
        quoted_id=refs.get("quoted"),
        retweeted_id=refs.get("retweeted"),
        hashtags=tuple(h["tag"] for h in entities.get("hashtags", [])),
        mentions=tuple(m["username"] for m in entities.get("mentions", [])),
        urls=tuple(u.get("expanded_url") or u.get("url", "") for u in entities.get("urls", [])),
        cashtags=tuple(c["tag"] for c in entities.get("cashtags", [])),
    )


class XApiAdapter(SocialAdapter):
    def __init__(
        self,
        bearer_token: str,
        base_url: str = "https://api.twitter.com/2",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not bearer_token:
            raise AdapterError("x_api", "Bearer token is not configured")
        self._headers = {"Authorization": f"Bearer {bearer_token}"}
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def search_posts(self, params: SearchParams) -> list[Post]:
        query: dict[str, str] = {
            "query": params.query,
            "tweet.fields": TWEET_FIELDS,
            "user.fields": USER_FIELDS,
            "expansions": "author_id",
            "max_results": str(max(params.max_results, MIN_RESULTS)),
        }
        if params.start_time:
            query["start_time"] = _iso(params.start_time)
        if params.end_time:
            query["end_time"] = _iso(params.end_time)

        payload = await self._get(SEARCH_ENDPOINT, query)
        if payload.get("errors") and not payload.get("data"):
            messages = ", ".join(e.get("message", "unknown") for e in payload["errors"])
            raise AdapterError("x_api", f"API returned errors: {messages}")

        users = {u["id"]: map_user(u) for u in (payload.get("includes") or {}).get("users", [])}
        mapped = (map_post(item, users) for item in payload.get("data") or [])
        posts = [post for post in mapped if post is not None]
        logger.debug("x_search_complete", query=params.query, count=len(posts))
        return posts[: params.max_results]

    async def _get(self, endpoint: str, query: dict[str, str]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(endpoint, params=query)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("x_api_status_error", endpoint=endpoint, status=exc.response.status_code)
            raise AdapterError(
                "x_api", f"Request failed with {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("x_api_request_error", endpoint=endpoint, error=str(exc))
            raise AdapterError("x_api", f"Request failed: {exc}") from exc
        except ValueError as exc:
            logger.error("x_api_decode_error", endpoint=endpoint, error=str(exc))
            raise AdapterError("x_api", "Response was not valid JSON") from exc
