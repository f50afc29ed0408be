"""
FastAPI dependencies for authentication and injected collaborators.

The data store, completion client and quote analyzer are built once in
the application lifespan and kept on ``app.state``.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from manupilot.database.store import DataStore
from manupilot.services.sourcing.analysis_service import QuoteAnalyzer
from manupilot.utils.ai_client import CompletionClient
from manupilot.utils.security import resolve_user_id

bearer_scheme = HTTPBearer(auto_error=False)


def get_store(request: Request) -> DataStore:
    """Get the application's data store."""
    return request.app.state.store


def get_completion_client(request: Request) -> CompletionClient | None:
    return getattr(request.app.state, "completion_client", None)


def get_quote_analyzer(request: Request) -> QuoteAnalyzer:
    return request.app.state.quote_analyzer


StoreDep = Annotated[DataStore, Depends(get_store)]
CompletionClientDep = Annotated[CompletionClient | None, Depends(get_completion_client)]
QuoteAnalyzerDep = Annotated[QuoteAnalyzer, Depends(get_quote_analyzer)]


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """
    Resolve the authenticated user id from the bearer token.

    Raises:
        HTTPException: If the token is missing or invalid
    """
    user_id = resolve_user_id(credentials.credentials) if credentials else None
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


CurrentUserDep = Annotated[str, Depends(get_current_user_id)]
