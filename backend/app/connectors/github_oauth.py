"""GitHub OAuth helpers: authorize URL, code exchange and user lookup."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from app.config import settings
from app.connectors.exceptions import GitHubAuthError

log = logging.getLogger(__name__)

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"


def build_authorize_url(state: str) -> str:
    params = {
        "client_id": settings.github_client_id,
        "scope": settings.github_oauth_scope,
        "state": state,
    }
    if settings.github_oauth_redirect_uri:
        params["redirect_uri"] = settings.github_oauth_redirect_uri
    return f"{GITHUB_AUTHORIZE_URL}?{urlencode(params)}"


async def exchange_code_for_token(code: str) -> str:
    """Exchange an OAuth callback code for a user access token."""
    if not settings.github_client_id or not settings.github_client_secret:
        raise GitHubAuthError("GitHub OAuth is not configured", status_code=500)

    payload = {
        "client_id": settings.github_client_id,
        "client_secret": settings.github_client_secret,
        "code": code,
    }
    if settings.github_oauth_redirect_uri:
        payload["redirect_uri"] = settings.github_oauth_redirect_uri

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.post(GITHUB_TOKEN_URL, data=payload, headers={"Accept": "application/json"})
            response.raise_for_status()
    except httpx.HTTPError as e:
        log.error(f"GitHub OAuth token exchange failed: {e}")
        raise GitHubAuthError(f"GitHub OAuth token exchange failed: {e}") from e

    data = response.json()
    token: Optional[str] = data.get("access_token")
    if not token:
        # GitHub answers 200 with {"error": "bad_verification_code", ...}
        description = data.get("error_description") or data.get("error") or "no access token returned"
        log.warning(f"GitHub OAuth exchange rejected: {description}")
        raise GitHubAuthError(f"GitHub OAuth exchange rejected: {description}", status_code=401)
    return token


async def fetch_github_user(access_token: str) -> Dict[str, Any]:
    """Profile of the token owner (`/user`)."""
    try:
        async with httpx.AsyncClient(base_url=settings.github_api_url, timeout=10) as client:
            response = await client.get(
                "/user",
                headers={
                    "Accept": "application/vnd.github+json",
                    "Authorization": f"Bearer {access_token}",
                },
            )
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise GitHubAuthError("GitHub rejected the access token", status_code=e.response.status_code) from e
    except httpx.RequestError as e:
        raise GitHubAuthError(f"GitHub unreachable: {e}") from e
    return response.json()
