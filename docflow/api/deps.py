import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request

from ..config import settings
from ..errors import NotFoundError
from ..registry import WorkflowRegistry


async def auth_bearer(authorization: Optional[str] = Header(default=None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing Bearer token")
    token = authorization[7:].strip()
    if not secrets.compare_digest(token, settings.api_token):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return token


def get_registry(request: Request) -> WorkflowRegistry:
    return request.app.state.registry


def require(entity, kind: str, entity_id: int):
    """Return ``entity`` or raise NotFoundError for a lookup that came back empty."""
    if entity is None:
        raise NotFoundError(f"{kind} {entity_id} not found")
    return entity
