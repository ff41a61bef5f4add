"""Auto-authentication client for the mock Identity Provider."""

from mock_idp.client.http_client import IdPClient
from mock_idp.client.orchestrator import (
    AutoAuthOrchestrator,
    BrowserSurface,
    OrchestratorState,
    PageContext,
    is_valid_email,
)

__all__ = [
    "AutoAuthOrchestrator",
    "BrowserSurface",
    "IdPClient",
    "OrchestratorState",
    "PageContext",
    "is_valid_email",
]
