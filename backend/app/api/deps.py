# backend/app/api/deps.py
from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.app.core.errors import AuthError
from backend.app.models.user import User
from backend.app.services.auth import SessionManager
from backend.app.services.credentials import CredentialManager
from backend.app.services.drive115 import Drive115Client, UpstreamClientFactory
from backend.app.services.qr_login import QRLoginBroker

# auto_error=False: missing/malformed headers are reported through AuthError
# so they share the JSON error envelope
bearer_scheme = HTTPBearer(auto_error=False)


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_credential_manager(request: Request) -> CredentialManager:
    return request.app.state.credential_manager


def get_client_factory(request: Request) -> UpstreamClientFactory:
    return request.app.state.client_factory


def get_qr_broker(request: Request) -> QRLoginBroker:
    return request.app.state.qr_broker


def get_bearer_token(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials


async def get_current_user(
        token: Optional[str] = Depends(get_bearer_token),
        sessions: SessionManager = Depends(get_session_manager),
) -> User:
    if token is None:
        raise AuthError("Missing or malformed Authorization header")
    return await sessions.validate_session(token)


async def get_active_drive_client(
        current_user: User = Depends(get_current_user),
        factory: UpstreamClientFactory = Depends(get_client_factory),
) -> AsyncGenerator[Drive115Client, None]:
    """Request-scoped client for the user's active credential."""
    client = await factory.resolve_active_client(current_user.id)
    try:
        yield client
    finally:
        await client.aclose()
