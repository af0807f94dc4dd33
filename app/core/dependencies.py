# app/core/dependencies.py
import logging
from uuid import UUID

import httpx
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings
from app.core.security import TokenVerifier
from app.database import get_session_factory
from app.domains.rag.client import FlowiseClient
from app.domains.rag.service import RagService
from app.domains.speech.client import OpenAISpeechClient
from app.domains.speech.service import SpeechService
from app.domains.threads.repository import ChatRepository
from app.domains.threads.service import ThreadService
from app.schemas.user import CurrentUser

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_token_verifier(config: Settings = Depends(get_settings)) -> TokenVerifier:
    return TokenVerifier(
        secret_key=config.auth_jwt_secret,
        algorithm=config.auth_jwt_algorithm,
        audience=config.auth_jwt_audience,
    )


async def validate_token(
    token: HTTPAuthorizationCredentials | None = Depends(security),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> dict:
    """Validate and decode the bearer token.

    Returns:
        dict: Decoded token payload

    Raises:
        HTTPException: If token is missing, invalid or expired
    """
    try:
        if not token or not token.credentials:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication token is required",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return verifier.verify_token(token.credentials)

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Token validation error: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_user(
    request: Request,
    payload: dict = Depends(validate_token),
) -> CurrentUser:
    """Build the caller identity from the token payload.

    Raises:
        HTTPException: If the subject claim is missing or not a UUID
    """
    subject = payload.get("sub")
    try:
        user_id = UUID(str(subject))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload - missing user ID",
        ) from None

    # Add user info to request state for logging
    request.state.user_id = user_id

    return CurrentUser(id=user_id, email=payload.get("email"), role=payload.get("role"))


def get_chat_repository(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ChatRepository:
    return ChatRepository(session_factory)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared upstream HTTP client created by the application lifespan."""
    return request.app.state.http_client


def get_thread_service(
    repository: ChatRepository = Depends(get_chat_repository),
    config: Settings = Depends(get_settings),
) -> ThreadService:
    return ThreadService(
        repository,
        default_title=config.default_thread_title,
        list_limit=config.thread_list_limit,
    )


def get_rag_service(
    repository: ChatRepository = Depends(get_chat_repository),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
) -> RagService:
    client = FlowiseClient(
        http_client,
        url=config.flowise_api_url,
        api_key=config.flowise_api_key,
        timeout=config.rag_request_timeout,
    )
    return RagService(
        repository,
        client,
        max_sources=config.rag_max_sources,
        default_source_title=config.rag_default_source_title,
    )


def get_speech_service(
    http_client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
) -> SpeechService:
    client = OpenAISpeechClient(
        http_client,
        api_key=config.openai_api_key,
        base_url=config.openai_api_url,
        transcription_model=config.transcription_model,
        transcription_timeout=config.transcription_timeout,
        speech_model=config.speech_model,
        speech_speed=config.speech_speed,
        speech_timeout=config.speech_timeout,
    )
    return SpeechService(client, default_voice=config.speech_voice, max_chars=config.speech_max_chars)
