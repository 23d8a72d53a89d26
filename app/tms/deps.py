"""
Shared FastAPI dependencies.
"""

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .database import get_db
from .services.identity import (
    AuthenticatedUser,
    AuthenticationError,
    IdentityProvider,
    get_identity_provider,
)
from .services.storage import LoadStore


async def get_current_user(
    authorization: str | None = Header(default=None),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> AuthenticatedUser:
    """Resolve the caller from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No authorization token provided",
        )

    token = authorization[len("Bearer "):].strip()
    try:
        return await provider.get_user(token)
    except AuthenticationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


def get_load_store(db: Session = Depends(get_db)) -> LoadStore:
    """Provide a LoadStore bound to the request's database session."""
    return LoadStore(db)
