import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import get_current_admin, get_current_user
from ..database import get_db
from ..domain.workshops.service import WorkshopService
from ..models import User
from ..schemas import ActivityResponse, ProfileResponse, ProfileUpdate, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    return {"data": current_user}


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    current_user.name = data.name
    current_user.updated_at = datetime.utcnow()
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Profile update failed for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update profile") from e

    db.refresh(current_user)
    return {"data": current_user, "message": "Profile updated successfully"}


@router.get("/activity", response_model=ActivityResponse)
async def get_activity(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Workshop registrations that are booked, confirmed or completed"""
    attended = WorkshopService(db).count_attended(current_user)
    return {"data": {"workshopsAttended": attended}}


@router.get("", response_model=list[UserResponse])
async def list_users(
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
