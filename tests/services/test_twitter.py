"""Tests for the Twitter monitor and its response parsers."""

from __future__ import annotations

import httpx
import pytest

from aobridge.config.schema import TwitterConfig
from aobridge.errors import UpstreamUnavailableError
from aobridge.services.twitter import (
    TwitterMonitor,
    clamp_tweet_count,
    clean_username,
    parse_timeline,
    parse_user,
)

USER_PAYLOAD = {
    "result": {
        "data": {
            "user": {
                "result": {
                    "id": "VXNlcjox",
                    "rest_id": "1001",
                    "is_blue_verified": True,
                    "legacy": {
                        "name": "AO Builder",
                        "screen_name": "aobuilder",
                        "description": "Building on AO",
                        "followers_count": 10,
                        "friends_count": 2,
                        "profile_image_url_https": "https://img.test/a.png",
                    },
                }
            }
        }
    }
}

AUTHOR = {"result": {"legacy": {"name": "AO Builder", "screen_name": "aobuilder"}}}


def _tweet_entry(rest_id: str, text: str, wrapped: bool = False) -> dict:
    tweet = {
        "__typename": "Tweet",
        "rest_id": rest_id,
        "core": {"user_results": AUTHOR},
        "legacy": {"full_text": text, "favorite_count": 3, "created_at": "Mon Jan 01"},
    }
    if wrapped:
        tweet = {"__typename": "TweetWithVisibilityResults", "tweet": tweet}
    return {
        "content": {
            "itemContent": {"__typename": "TimelineTweet", "tweet_results": {"result": tweet}}
        }
    }


TIMELINE_PAYLOAD = {
    "result": {
        "timeline": {
            "instructions": [
                {"type": "TimelineClearCache"},
                {"type": "TimelinePinEntry", "entry": _tweet_entry("1", "pinned")},
                {
                    "type": "TimelineAddEntries",
                    "entries": [
                        _tweet_entry("2", "second"),
                        {"content": {"itemContent": {"__typename": "TimelineCursor"}}},
                        _tweet_entry("3", "third", wrapped=True),
                    ],
                },
            ]
        }
    }
}


class TestHelpers:
    @pytest.mark.parametrize(
        ("count", "expected"),
        [(None, 10), (0, 10), (5, 5), (50, 20), (-3, 1)],
    )
    def test_clamp_tweet_count(self, count, expected):
        assert clamp_tweet_count(count) == expected

    def test_clean_username(self):
        assert clean_username("@aobuilder") == "aobuilder"
        assert clean_username("aobuilder") == "aobuilder"


class TestParsers:
    def test_parse_user(self):
        user = parse_user(USER_PAYLOAD, "aobuilder")
        assert user["rest_id"] == "1001"
        assert user["screen_name"] == "aobuilder"
        assert user["verified"] is True

    def test_parse_user_missing_result(self):
        with pytest.raises(ValueError):
            parse_user({"result": {}}, "ghost")

    def test_parse_timeline_collects_all_entry_kinds(self):
        tweets = parse_timeline(TIMELINE_PAYLOAD, 10)
        assert [t["text"] for t in tweets] == ["pinned", "second", "third"]
        assert tweets[0]["public_metrics"]["like_count"] == 3
        assert tweets[0]["author"]["screen_name"] == "aobuilder"

    def test_parse_timeline_respects_count(self):
        assert len(parse_timeline(TIMELINE_PAYLOAD, 2)) == 2

    def test_parse_timeline_without_timeline(self):
        with pytest.raises(ValueError):
            parse_timeline({"result": {}}, 5)


def _monitor(handler) -> TwitterMonitor:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    config = TwitterConfig(rapidapi_key="k", tweet_delay_seconds=0)
    return TwitterMonitor(config, http)


class TestMonitor:
    @pytest.mark.asyncio
    async def test_profile_and_tweets(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/user":
                return httpx.Response(200, json=USER_PAYLOAD)
            return httpx.Response(200, json=TIMELINE_PAYLOAD)

        result = await _monitor(handler).monitor("aobuilder", 2)

        assert result["user"]["name"] == "AO Builder"
        assert len(result["tweets"]) == 2
        assert seen[0].headers["x-rapidapi-key"] == "k"
        assert seen[1].url.params["user"] == "1001"

    @pytest.mark.asyncio
    async def test_rate_limited_tweets_still_return_user(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/user":
                return httpx.Response(200, json=USER_PAYLOAD)
            return httpx.Response(429)

        result = await _monitor(handler).monitor("aobuilder")

        assert result["user"]["rest_id"] == "1001"
        assert result["tweets"] == []

    @pytest.mark.asyncio
    async def test_user_failure_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        with pytest.raises(UpstreamUnavailableError, match="ghost"):
            await _monitor(handler).monitor("ghost")
