"""Twitter monitor endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel, Field

from aobridge.api.dependencies import get_twitter_monitor
from aobridge.errors import ValidationError
from aobridge.services.twitter import TwitterMonitor, clamp_tweet_count, clean_username

router = APIRouter(prefix="/twitter", tags=["twitter"])


class MonitorRequest(BaseModel):
    username: str | None = Field(default=None, max_length=64)
    tweetCount: int | None = None  # noqa: N815


@router.post("/monitor")
async def monitor(
    body: MonitorRequest,
    monitor: TwitterMonitor = Depends(get_twitter_monitor),  # noqa: B008
) -> dict:
    if not body.username:
        raise ValidationError("Username is required")
    username = clean_username(body.username)
    count = clamp_tweet_count(body.tweetCount)
    logger.info("Monitoring Twitter user {}, fetching {} tweets", username, count)
    return {"success": True, "data": await monitor.monitor(username, count)}
