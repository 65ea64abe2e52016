import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import User
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is reported as 401 below, not 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to a user record"""

    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials

    # Basic token format validation before processing
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, token length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    payload = verify_jwt_token(token)
    if payload is None:
        raise HTTPException(status_code=401, detail="Access denied. Invalid or expired token.")

    user_id = payload.get("sub")
    if not user_id or not str(user_id).isdigit():
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user = db.query(User).filter(User.id == int(user_id)).first()
    if not user:
        logger.warning(f"⚠️ Token for unknown user id {user_id}")
        raise HTTPException(status_code=401, detail="Access denied. User not found.")

    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    """
    Get current user and verify they have the admin role.
    Use this dependency for all admin routes.
    """
    if user.role != "admin":
        logger.warning(f"⚠️ User {user.email} attempted to access an admin route")
        raise HTTPException(status_code=403, detail="Access denied. Admins only.")
    return user
