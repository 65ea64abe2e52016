import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..rate_limiter import create_rate_limiter
from ..schemas import MessageResponse, SigninRequest, SigninResponse, SignupRequest
from ..security_utils import create_access_token, hash_password_bcrypt, verify_password_bcrypt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

# 10 attempts per IP per 15 minutes
auth_rate_limiter = create_rate_limiter(limit=10, window_seconds=900, key_prefix="auth")


@router.post("/signup", response_model=MessageResponse, status_code=201)
async def signup(
    data: SignupRequest,
    db: Session = Depends(get_db),
    _: None = Depends(auth_rate_limiter),
):
    """Create an email/password account"""
    existing = db.query(User).filter(User.email == data.email).first()
    if existing:
        if not existing.can_login_with_password():
            raise HTTPException(
                status_code=400,
                detail="An account with this email already exists. Please sign in with Google.",
            )
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(name=data.name, email=data.email, password_hash=hash_password_bcrypt(data.password))
    try:
        db.add(user)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Signup failed for {data.email}: {e}")
        raise HTTPException(status_code=500, detail="Signup failed") from e

    logger.info(f"✅ New account created: {user.email}")
    return {"message": "Account created successfully"}


@router.post("/signin", response_model=SigninResponse)
async def signin(
    data: SigninRequest,
    db: Session = Depends(get_db),
    _: None = Depends(auth_rate_limiter),
):
    """Exchange email and password for a one-day access token"""
    user = db.query(User).filter(User.email == data.email).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if not user.can_login_with_password():
        raise HTTPException(
            status_code=401,
            detail="No password set for this account. Please use social login.",
        )

    if not verify_password_bcrypt(data.password, user.password_hash):
        logger.warning(f"⚠️ Failed sign-in for {user.email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {
        "token": create_access_token(user.id),
        "user": {"id": user.id, "name": user.name, "email": user.email},
    }
