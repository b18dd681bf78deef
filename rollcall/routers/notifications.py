"""Notifications between users."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rollcall.database import get_db
from rollcall.models.notification import Notification
from rollcall.schemas.notification import NotificationCreate, NotificationResponse

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.post("", status_code=201)
def create_notification(data: NotificationCreate, db: Session = Depends(get_db)):
    notification = Notification(sender_id=data.sender_id, receiver_id=data.receiver_id, message=data.message)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return {
        "message": "Notification sent",
        "data": NotificationResponse.model_validate(notification).model_dump(mode="json"),
    }


@router.get("/{user_id}")
def list_notifications(user_id: int, db: Session = Depends(get_db)):
    rows = (
        db.query(Notification)
        .filter(Notification.receiver_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )
    return {
        "message": "Notifications fetched successfully",
        "data": [NotificationResponse.model_validate(n).model_dump(mode="json") for n in rows],
    }
