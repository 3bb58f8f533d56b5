"""FastAPI dependency injection providers."""

from typing import Annotated, AsyncIterator
from fastapi import Depends, HTTPException, status

from app.auth import get_github_token
from app.connectors.exceptions import GitHubAPIError
from app.connectors.github_connector import GitHubConnector


async def get_github_connector(
    token: Annotated[str, Depends(get_github_token)]
) -> AsyncIterator[GitHubConnector]:
    """GitHub connector authenticated as the current user, closed after the request."""
    connector = GitHubConnector({"access_token": token})
    try:
        yield connector
    finally:
        await connector.aclose()


def github_http_error(e: GitHubAPIError) -> HTTPException:
    """Map a failed GitHub call onto the response the API client sees."""
    if e.status_code in (400, 401, 403, 404, 409, 422):
        return HTTPException(status_code=e.status_code, detail=e.message)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"GitHub request failed: {e.message}")
