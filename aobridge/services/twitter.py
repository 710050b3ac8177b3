"""Twitter account monitor over the RapidAPI twitter241 proxy.

A monitor call resolves the user profile first, then fetches the recent
timeline. Timeline failures are logged and yield an empty tweet list so
callers still get the profile.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

import httpx
from loguru import logger

from aobridge.config.schema import TwitterConfig
from aobridge.errors import UpstreamUnavailableError

MAX_TWEETS = 20
DEFAULT_TWEETS = 10


def clamp_tweet_count(count: int | None) -> int:
    return min(max(count or DEFAULT_TWEETS, 1), MAX_TWEETS)


def clean_username(username: str) -> str:
    return username.removeprefix("@")


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def parse_user(payload: dict[str, Any], username: str) -> dict[str, Any]:
    user = _dig(payload, "result", "data", "user", "result")
    if not isinstance(user, dict):
        raise ValueError(f"User result missing in response for {username}")
    legacy = user.get("legacy")
    if not isinstance(legacy, dict):
        raise ValueError(f"User legacy data missing for {username}")
    return {
        "id": user.get("id"),
        "rest_id": user.get("rest_id"),
        "name": legacy.get("name"),
        "screen_name": legacy.get("screen_name"),
        "description": legacy.get("description"),
        "followers_count": legacy.get("followers_count"),
        "friends_count": legacy.get("friends_count"),
        "verified": bool(legacy.get("verified") or user.get("is_blue_verified")),
        "profile_image_url_https": legacy.get("profile_image_url_https"),
    }


def parse_tweet(tweet: dict[str, Any]) -> dict[str, Any] | None:
    legacy = tweet.get("legacy")
    author = _dig(tweet, "core", "user_results", "result", "legacy")
    if not isinstance(legacy, dict) or not isinstance(author, dict):
        return None

    media = [
        {
            "type": item.get("type"),
            "url": item.get("media_url_https") or item.get("url"),
            "preview_image_url": item.get("media_url_https"),
        }
        for item in _dig(legacy, "entities", "media") or []
    ]
    parsed: dict[str, Any] = {
        "id": tweet.get("rest_id"),
        "text": legacy.get("full_text") or legacy.get("text") or "",
        "created_at": legacy.get("created_at"),
        "author": {
            "name": author.get("name"),
            "screen_name": author.get("screen_name"),
            "profile_image_url": author.get("profile_image_url_https"),
        },
        "public_metrics": {
            "retweet_count": legacy.get("retweet_count") or 0,
            "like_count": legacy.get("favorite_count") or 0,
            "reply_count": legacy.get("reply_count") or 0,
            "quote_count": legacy.get("quote_count") or 0,
        },
    }
    if media:
        parsed["media"] = media
    return parsed


def _tweet_from_entry(entry: dict[str, Any]) -> dict[str, Any] | None:
    item = _dig(entry, "content", "itemContent")
    if not isinstance(item, dict) or item.get("__typename") != "TimelineTweet":
        return None
    result = _dig(item, "tweet_results", "result")
    if isinstance(result, dict) and result.get("__typename") == "TweetWithVisibilityResults":
        result = result.get("tweet")
    if not isinstance(result, dict):
        return None
    if result.get("__typename") != "Tweet" and not result.get("rest_id"):
        return None
    return parse_tweet(result)


def parse_timeline(payload: dict[str, Any], count: int) -> list[dict[str, Any]]:
    """Extract up to `count` tweets, pinned entries included, from a timeline response."""
    timeline = _dig(payload, "result", "timeline")
    if not isinstance(timeline, dict):
        raise ValueError("No timeline field in result")

    tweets: list[dict[str, Any]] = []
    for instruction in timeline.get("instructions") or []:
        kind = instruction.get("type")
        if kind == "TimelineAddEntries":
            entries = instruction.get("entries") or []
        elif kind == "TimelinePinEntry" and instruction.get("entry"):
            entries = [instruction["entry"]]
        else:
            continue
        for entry in entries:
            tweet = _tweet_from_entry(entry)
            if tweet is not None:
                tweets.append(tweet)
    return tweets[:count]


class TwitterMonitor:
    """Fetches a profile plus its latest tweets."""

    def __init__(self, config: TwitterConfig, http_client: httpx.AsyncClient) -> None:
        self._config = config
        self._http = http_client

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        host = self._config.rapidapi_host
        resp = await self._http.get(
            f"https://{host}/{path}",
            params=params,
            headers={
                "x-rapidapi-key": self._config.rapidapi_key.get_secret_value(),
                "x-rapidapi-host": host,
            },
            timeout=self._config.timeout,
        )
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError("No response data received")
        return data

    async def get_user(self, username: str) -> dict[str, Any]:
        logger.info("Fetching Twitter user: {}", username)
        try:
            return parse_user(await self._get("user", {"username": username}), username)
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailableError(f"Failed to fetch user {username}: {exc}") from exc

    async def get_tweets(self, user_id: str, count: int = DEFAULT_TWEETS) -> list[dict[str, Any]]:
        payload = await self._get("user-tweets", {"user": user_id, "count": count})
        return parse_timeline(payload, count)

    async def monitor(self, username: str, tweet_count: int = DEFAULT_TWEETS) -> dict[str, Any]:
        user = await self.get_user(username)

        tweets: list[dict[str, Any]] = []
        try:
            await asyncio.sleep(self._config.tweet_delay_seconds)
            tweets = await self.get_tweets(str(user["rest_id"]), tweet_count)
        except (httpx.HTTPError, ValueError) as exc:
            if isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 429:
                logger.warning("Rate limit reached for tweets API, returning user data only")
            else:
                logger.warning("Could not fetch tweets for {}: {}", username, exc)

        logger.info("Fetched {} tweets for {}", len(tweets), username)
        return {
            "user": user,
            "tweets": tweets,
            "timestamp": datetime.now(UTC).isoformat(),
        }
