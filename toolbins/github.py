"""Client for the GitHub releases API."""

from __future__ import annotations

import time
from typing import Any

import requests

from .errors import MetadataFetchError, RateLimitError
from .utils import _maybe_github_token_header, log

GITHUB_API_URL = "https://api.github.com"


def _retry_after(response: requests.Response) -> float | None:
    """Seconds to wait before retrying, or None if GitHub did not say."""
    retry_after = response.headers.get("Retry-After")
    if retry_after is not None:
        try:
            return float(retry_after)
        except ValueError:
            return None
    reset = response.headers.get("X-RateLimit-Reset")
    if reset is not None:
        try:
            return max(0.0, float(reset) - time.time())
        except ValueError:
            return None
    return None


def _is_rate_limited(response: requests.Response) -> bool:
    if response.status_code not in (403, 429):
        return False
    return (
        response.status_code == 429
        or "Retry-After" in response.headers
        or response.headers.get("X-RateLimit-Remaining") == "0"
    )


def _raise_for_status(response: requests.Response, what: str) -> None:
    if _is_rate_limited(response):
        msg = f"GitHub API rate limit exceeded while fetching {what}"
        raise RateLimitError(msg, _retry_after(response))
    try:
        response.raise_for_status()
    except requests.HTTPError as e:
        msg = f"Failed to fetch {what}: {e}"
        raise MetadataFetchError(msg) from e


class ReleaseClient:
    """Fetch release metadata and asset download URLs from GitHub."""

    def __init__(
        self,
        token: str | None = None,
        session: requests.Session | None = None,
        timeout: float = 30,
        api_url: str = GITHUB_API_URL,
    ) -> None:
        self.session = session or requests.Session()
        self.session.headers.update(_maybe_github_token_header(token))
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")

    def _get(self, path: str, what: str, **kwargs: Any) -> requests.Response:
        url = f"{self.api_url}{path}"
        log(f"Fetching {url}", "debug")
        try:
            response = self.session.get(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            msg = f"Failed to fetch {what}: {e}"
            raise MetadataFetchError(msg) from e
        _raise_for_status(response, what)
        return response

    def latest_release(self, org: str, repo: str) -> dict:
        """Get the latest release information from GitHub."""
        return self._get(f"/repos/{org}/{repo}/releases/latest", f"latest release of {org}/{repo}").json()

    def release_by_tag(self, org: str, repo: str, tag: str) -> dict:
        """Get the release published under ``tag``."""
        return self._get(f"/repos/{org}/{repo}/releases/tags/{tag}", f"release {tag} of {org}/{repo}").json()

    @staticmethod
    def release_assets(release: dict) -> dict[str, str]:
        """Map asset file names to their (string encoded) asset IDs."""
        return {asset["name"]: str(asset["id"]) for asset in release.get("assets", [])}

    def download_release_asset(self, org: str, repo: str, asset_id: int) -> str:
        """Return the short-lived URL the asset's content is served from.

        GitHub answers the asset request with a redirect to its storage
        backend; the redirect target is returned instead of followed.
        """
        response = self._get(
            f"/repos/{org}/{repo}/releases/assets/{asset_id}",
            f"asset {asset_id} of {org}/{repo}",
            headers={"Accept": "application/octet-stream"},
            allow_redirects=False,
        )
        location = response.headers.get("Location")
        if not response.is_redirect or not location:
            msg = f"Expected a redirect for asset {asset_id} of {org}/{repo}, got HTTP {response.status_code}"
            raise MetadataFetchError(msg)
        return location
