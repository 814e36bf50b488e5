"""
Reddit content source.

Reads post scores, existence and subreddit listings. With app credentials it
uses an app-only OAuth token (client_credentials grant) against
oauth.reddit.com; without them it falls back to the public JSON endpoints.

Every request carries a timeout. Timeouts, connection failures, rate limiting
and 5xx responses raise UpstreamUnavailableError so callers can apply their
fallback; 403/404 and empty listings mean the post does not exist.
"""

import logging
import time

import requests

from config import (
    REDDIT_CLIENT_ID,
    REDDIT_CLIENT_SECRET,
    REDDIT_TIMEOUT_SECONDS,
    REDDIT_USER_AGENT,
)
from domain.models.round import PostSnapshot
from services.errors import UpstreamUnavailableError
from services.interfaces import IContentSource

logger = logging.getLogger("gamerit.reddit")

TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
OAUTH_BASE_URL = "https://oauth.reddit.com"
PUBLIC_BASE_URL = "https://www.reddit.com"

# Refresh the token this many seconds before Reddit says it expires
_TOKEN_EXPIRY_SLACK = 60

_REMOVED_MARKERS = ("[deleted]", "[removed]")


def is_post_removed(data: dict) -> bool:
    """Whether a listing entry describes a deleted or moderator-removed post."""
    if data.get("removed_by_category"):
        return True
    if data.get("selftext") in _REMOVED_MARKERS:
        return True
    if data.get("title") in _REMOVED_MARKERS:
        return True
    return False


class RedditClient(IContentSource):
    """requests-based client for the subset of the Reddit API the game needs."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.client_id = client_id if client_id is not None else REDDIT_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else REDDIT_CLIENT_SECRET
        self.user_agent = user_agent or REDDIT_USER_AGENT
        self.timeout = timeout if timeout is not None else REDDIT_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self._token: str | None = None
        self._token_expires_at = 0.0

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _get_token(self) -> str:
        if self._token and time.time() < self._token_expires_at:
            return self._token

        try:
            response = self.session.post(
                TOKEN_URL,
                auth=(self.client_id, self.client_secret),
                data={"grant_type": "client_credentials"},
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamUnavailableError(f"Reddit token request failed: {exc}") from exc

        if response.status_code != 200:
            raise UpstreamUnavailableError(
                f"Reddit token request returned HTTP {response.status_code}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamUnavailableError("Unreadable Reddit token response") from exc
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise UpstreamUnavailableError("Reddit token response had no access_token")

        self._token = token
        self._token_expires_at = time.time() + int(payload.get("expires_in", 3600)) - _TOKEN_EXPIRY_SLACK
        logger.debug("Obtained Reddit app-only token")
        return token

    def _request(self, path: str, params: dict | None = None) -> requests.Response:
        headers = {"User-Agent": self.user_agent}
        if self.has_credentials:
            headers["Authorization"] = f"Bearer {self._get_token()}"
            url = f"{OAUTH_BASE_URL}{path}"
        else:
            url = f"{PUBLIC_BASE_URL}{path}.json" if not path.endswith(".json") else f"{PUBLIC_BASE_URL}{path}"

        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.Timeout as exc:
            raise UpstreamUnavailableError(f"Reddit request timed out: {path}") from exc
        except requests.RequestException as exc:
            raise UpstreamUnavailableError(f"Reddit request failed: {exc}") from exc

        if response.status_code == 401 and self.has_credentials:
            # Token revoked or expired early; drop it so the next call refreshes
            self._token = None
        if response.status_code == 429 or response.status_code >= 500 or response.status_code == 401:
            raise UpstreamUnavailableError(
                f"Reddit returned HTTP {response.status_code} for {path}"
            )
        return response

    def fetch_post(self, post_id: str) -> PostSnapshot | None:
        """
        Look up a single post by id.

        Returns None when the post no longer exists or has been removed.
        """
        response = self._request("/api/info.json", params={"id": f"t3_{post_id}"})
        if response.status_code in (403, 404):
            return None
        if response.status_code != 200:
            raise UpstreamUnavailableError(
                f"Reddit returned HTTP {response.status_code} for post {post_id}"
            )
        try:
            children = response.json().get("data", {}).get("children", [])
        except ValueError as exc:
            raise UpstreamUnavailableError(f"Unreadable Reddit response for {post_id}") from exc

        if not children:
            return None
        data = children[0].get("data", {})
        if is_post_removed(data):
            return None
        return PostSnapshot.from_listing(data)

    def fetch_score(self, post_id: str) -> int:
        post = self.fetch_post(post_id)
        if post is None:
            raise UpstreamUnavailableError(f"Post {post_id} is no longer available")
        return post.score

    def fetch_exists(self, post_id: str) -> bool:
        return self.fetch_post(post_id) is not None

    def fetch_listing(
        self,
        subreddit: str,
        sort: str = "hot",
        time_filter: str | None = None,
        limit: int = 50,
    ) -> list[PostSnapshot]:
        """Fetch a subreddit listing (hot, top, controversial) as post snapshots."""
        params = {"limit": limit, "raw_json": 1}
        if time_filter:
            params["t"] = time_filter
        response = self._request(f"/r/{subreddit}/{sort}", params=params)
        if response.status_code != 200:
            logger.warning(f"Listing r/{subreddit}/{sort} returned HTTP {response.status_code}")
            return []

        try:
            children = response.json().get("data", {}).get("children", [])
        except ValueError as exc:
            raise UpstreamUnavailableError(f"Unreadable listing for r/{subreddit}") from exc

        posts = []
        for child in children:
            if child.get("kind") != "t3":
                continue
            data = child.get("data", {})
            if not data.get("id") or is_post_removed(data):
                continue
            posts.append(PostSnapshot.from_listing(data))
        return posts
