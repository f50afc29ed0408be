"""API module for the ManuPilot sourcing API."""

from manupilot.api.dependencies import (
    get_store,
    get_completion_client,
    get_quote_analyzer,
    get_current_user_id,
)

__all__ = [
    "get_store",
    "get_completion_client",
    "get_quote_analyzer",
    "get_current_user_id",
]
