"""
Centralized configuration for the Gamerit round and ledger engine.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _parse_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float(env_var: str, default: float) -> float:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_bool(env_var: str, default: bool) -> bool:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _parse_str_list(env_var: str, default: list[str]) -> list[str]:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    values = [x.strip() for x in raw.split(",") if x.strip()]
    return values or default


DB_PATH = os.getenv("DB_PATH", "gamerit.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# HTTP surface
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = _parse_int("API_PORT", 8000)
CORS_ORIGINS = _parse_str_list("CORS_ORIGINS", ["http://localhost:5173"])

# Reddit app-only credentials (client_credentials grant)
REDDIT_CLIENT_ID = os.getenv("REDDIT_CLIENT_ID")
REDDIT_CLIENT_SECRET = os.getenv("REDDIT_CLIENT_SECRET")
REDDIT_USER_AGENT = os.getenv("REDDIT_USER_AGENT", "Gamerit/1.0")
REDDIT_TIMEOUT_SECONDS = _parse_float("REDDIT_TIMEOUT_SECONDS", 10.0)

# Economy
STARTING_CHIPS = _parse_int("STARTING_CHIPS", 1000)
MIN_WAGER = _parse_int("MIN_WAGER", 10)
WINNER_PAYOUT_MULTIPLIER = _parse_int("WINNER_PAYOUT_MULTIPLIER", 2)
WELFARE_CHIPS = _parse_int("WELFARE_CHIPS", 50)
WELFARE_COOLDOWN_SECONDS = _parse_int("WELFARE_COOLDOWN_SECONDS", 86400)  # 24 hours

# Classic post-vs-post rounds
ROUND_DURATION_SECONDS = _parse_int("ROUND_DURATION_SECONDS", 86400)  # 24 hours
ROUND_SAFETY_MARGIN_SECONDS = _parse_int("ROUND_SAFETY_MARGIN_SECONDS", 3600)  # 1 hour
RECENT_ROUND_LOOKBACK = _parse_int("RECENT_ROUND_LOOKBACK", 50)
CLASSIC_MIN_SCORE = _parse_int("CLASSIC_MIN_SCORE", 10)
CLASSIC_MIN_TITLE_LENGTH = _parse_int("CLASSIC_MIN_TITLE_LENGTH", 20)
CLASSIC_MAX_TITLE_LENGTH = _parse_int("CLASSIC_MAX_TITLE_LENGTH", 300)
CLASSIC_SUBREDDIT_SAMPLE = _parse_int("CLASSIC_SUBREDDIT_SAMPLE", 6)
CLASSIC_SUBREDDITS = _parse_str_list(
    "CLASSIC_SUBREDDITS",
    [
        "AskReddit",
        "funny",
        "pics",
        "todayilearned",
        "worldnews",
        "science",
        "gaming",
        "movies",
        "aww",
        "Showerthoughts",
        "mildlyinteresting",
        "LifeProTips",
        "explainlikeimfive",
        "nottheonion",
        "space",
    ],
)

# Hot potato rounds
HOT_POTATO_DURATION_SECONDS = _parse_int("HOT_POTATO_DURATION_SECONDS", 172800)  # 48 hours
HOT_POTATO_MAX_HOURS = _parse_int("HOT_POTATO_MAX_HOURS", 48)
HOT_POTATO_MAX_ACTIVE = _parse_int("HOT_POTATO_MAX_ACTIVE", 5)
HOT_POTATO_TARGET_ACTIVE = _parse_int("HOT_POTATO_TARGET_ACTIVE", 3)
HOT_POTATO_RECENT_LOOKBACK = _parse_int("HOT_POTATO_RECENT_LOOKBACK", 20)
HOT_POTATO_MAX_UPVOTE_RATIO = _parse_float("HOT_POTATO_MAX_UPVOTE_RATIO", 0.8)
HOT_POTATO_MIN_COMMENTS = _parse_int("HOT_POTATO_MIN_COMMENTS", 20)
HOT_POTATO_MAX_POST_AGE_HOURS = _parse_float("HOT_POTATO_MAX_POST_AGE_HOURS", 12.0)
HOT_POTATO_SUBREDDITS = _parse_str_list(
    "HOT_POTATO_SUBREDDITS",
    [
        "unpopularopinion",
        "AmItheAsshole",
        "changemyview",
        "TrueOffMyChest",
        "antiwork",
        "facepalm",
        "PublicFreakout",
        "Conservative",
    ],
)

# Meme stock market
MARKET_HISTORY_WINDOW_SECONDS = _parse_int("MARKET_HISTORY_WINDOW_SECONDS", 604800)  # 7 days

# Scheduler
SCHEDULER_ENABLE_HOT_POTATO = _parse_bool("SCHEDULER_ENABLE_HOT_POTATO", True)

# Shared secret required on /api/scheduler/* when set
SCHEDULER_TOKEN = os.getenv("SCHEDULER_TOKEN")
