"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from quadrant.capabilities import SchemaCapabilities, inspect_capabilities
from quadrant.config import Settings, get_settings
from quadrant.database import init_db
from quadrant.errors import ErrorCode, ServiceError


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_workspace_id(
    x_workspace_id: Annotated[str | None, Header()] = None,
) -> str:
    """Extract workspace ID from header."""
    if not x_workspace_id:
        raise ServiceError(ErrorCode.AUTH_REQUIRED, "X-Workspace-ID header is required")
    return x_workspace_id


async def get_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Extract the acting user from header."""
    if not x_user_id:
        raise ServiceError(ErrorCode.AUTH_REQUIRED, "X-User-ID header is required")
    return x_user_id


def get_app_settings() -> Settings:
    return get_settings()


async def get_capabilities(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> SchemaCapabilities:
    """Optional features usable against the live schema."""
    return await inspect_capabilities(db, settings)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
WorkspaceId = Annotated[str, Depends(get_workspace_id)]
UserId = Annotated[str, Depends(get_user_id)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Capabilities = Annotated[SchemaCapabilities, Depends(get_capabilities)]
