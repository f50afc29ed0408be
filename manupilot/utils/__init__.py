"""
Utility modules for the ManuPilot sourcing API.

Provides shared functionality across all services:
- Completion client for the hosted language model
- Bearer token verification
- Logging utilities for structured logging
"""

from manupilot.utils.ai_client import (
    CompletionClient,
    CompletionError,
    OpenAICompletionClient,
    ScriptedCompletionClient,
    PromptBuilder,
    load_json_response,
    prompt_builder,
)
from manupilot.utils.security import (
    create_access_token,
    decode_token,
    resolve_user_id,
)
from manupilot.utils.logging import (
    setup_logging,
    get_logger,
    RequestLogger,
    AuditLogger,
    ServiceLogger,
    request_logger,
    audit_logger,
)

__all__ = [
    # Completion client
    "CompletionClient",
    "CompletionError",
    "OpenAICompletionClient",
    "ScriptedCompletionClient",
    "PromptBuilder",
    "load_json_response",
    "prompt_builder",
    # Security
    "create_access_token",
    "decode_token",
    "resolve_user_id",
    # Logging
    "setup_logging",
    "get_logger",
    "RequestLogger",
    "AuditLogger",
    "ServiceLogger",
    "request_logger",
    "audit_logger",
]
