from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from dashboard.dependencies import get_notifications
from dashboard.schemas import NoticeOut
from services import NotificationCenter

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/", response_model=List[NoticeOut])
async def list_notifications(notifications: NotificationCenter = Depends(get_notifications)):
    return [NoticeOut(**notice.to_dict()) for notice in notifications.pending()]


@router.delete("/{notice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def dismiss_notification(notice_id: str, notifications: NotificationCenter = Depends(get_notifications)):
    if not notifications.dismiss(notice_id):
        raise HTTPException(status_code=404, detail="Notification not found")


@router.post("/{notice_id}/undo", response_model=dict)
async def undo_notification(notice_id: str, notifications: NotificationCenter = Depends(get_notifications)):
    notice = notifications.get(notice_id)
    if notice is None or not notice.can_undo:
        raise HTTPException(status_code=404, detail="Nothing to undo")
    await notifications.undo(notice_id)
    return {"undone": notice_id}
