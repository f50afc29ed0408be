"""
Account API routes: notifications and NDA acceptance.
"""

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field

from manupilot.api.dependencies import CurrentUserDep, StoreDep
from manupilot.services import NdaService, NotificationService, first_forwarded_hop

router = APIRouter()


# Schemas
class MarkReadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notification_ids: list[str] | None = Field(None, alias="notificationIds")
    mark_all_read: bool = Field(False, alias="markAllRead")


class NdaAcceptRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    typed_name: str | None = Field(None, alias="typedName")


# Notification endpoints
@router.get("/notifications")
async def list_notifications(
    store: StoreDep,
    current_user: CurrentUserDep,
    unread_only: bool = False,
):
    """Latest notifications with the user's unread count."""
    page = await NotificationService(store).list_notifications(current_user, unread_only=unread_only)
    return {"notifications": page.notifications, "unread_count": page.unread_count}


@router.post("/notifications/read")
async def mark_notifications_read(
    body: MarkReadRequest,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    try:
        updated = await NotificationService(store).mark_read(
            current_user,
            notification_ids=body.notification_ids,
            mark_all=body.mark_all_read,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"success": True, "updated": updated}


# NDA endpoints
@router.get("/nda/status")
async def get_nda_status(
    store: StoreDep,
    current_user: CurrentUserDep,
):
    nda_status = await NdaService(store).get_status(current_user)
    return nda_status.to_dict()


@router.post("/nda/accept")
async def accept_nda(
    body: NdaAcceptRequest,
    request: Request,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    """Accept the current NDA version. Repeat calls return the first record."""
    ip_address = first_forwarded_hop(request.headers.get("x-forwarded-for")) or (
        request.client.host if request.client else None
    )

    record = await NdaService(store).accept(
        current_user,
        typed_name=body.typed_name,
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent"),
    )
    return {"success": True, "record": record}


@router.delete("/nda")
async def reset_nda(
    store: StoreDep,
    current_user: CurrentUserDep,
):
    count = await NdaService(store).reset(current_user)
    return {"success": True, "count": count}
