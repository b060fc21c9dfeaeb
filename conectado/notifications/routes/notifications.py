from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from conectado.auth.dependencies import get_current_user, require_admin, require_roles
from conectado.auth.models.user import User, UserRole
from conectado.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from conectado.core.exceptions import NotFoundError
from conectado.core.schemas import ApiResponse, success_response
from conectado.db.session import get_db
from conectado.notifications.schemas.notification import (
    BulkNotificationRequest,
    CreateNotificationRequest,
    NotificationListResponse,
    NotificationResponse,
    OnlineStatusResponse,
    UnreadCountResponse,
)
from conectado.notifications.services.notification_service import NotificationService
from conectado.notifications.services.presence_service import PresenceService
from conectado.realtime.gateway import PushGateway, get_gateway

router = APIRouter()


@router.get("", response_model=ApiResponse[NotificationListResponse])
async def list_notifications(
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[NotificationListResponse]:
    service = NotificationService(db)
    return success_response(service.list_for_user(current_user.id, page, page_size))


@router.get("/unread-count", response_model=ApiResponse[UnreadCountResponse])
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[UnreadCountResponse]:
    count = NotificationService(db).get_unread_count(current_user.id)
    return success_response(UnreadCountResponse(count=count))


@router.put("/read-all", response_model=ApiResponse[int])
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[int]:
    updated = await NotificationService(db, gateway).mark_all_read(current_user.id)
    return success_response(updated, "Notificaciones marcadas como leídas")


@router.put("/{notification_id}/read", response_model=ApiResponse[None])
async def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[None]:
    service = NotificationService(db, gateway)
    if not await service.mark_read(notification_id, current_user.id):
        raise NotFoundError("Notificación no encontrada o ya leída", resource="notification")
    return success_response(None, "Notificación marcada como leída")


@router.delete("/{notification_id}", response_model=ApiResponse[None])
async def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[None]:
    service = NotificationService(db, gateway)
    if not await service.delete(notification_id, current_user.id):
        raise NotFoundError("Notificación no encontrada", resource="notification")
    return success_response(None, "Notificación eliminada")


@router.post(
    "",
    response_model=ApiResponse[NotificationResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_notification(
    data: CreateNotificationRequest,
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.ORGANIZATION)),
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[NotificationResponse]:
    if data.sender_id is None:
        data = data.model_copy(update={"sender_id": current_user.id})
    notification = await NotificationService(db, gateway).create(data)
    return success_response(notification, "Notificación creada")


@router.post(
    "/bulk",
    response_model=ApiResponse[list[NotificationResponse]],
    status_code=status.HTTP_201_CREATED,
)
async def create_bulk_notifications(
    data: BulkNotificationRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[list[NotificationResponse]]:
    if data.sender_id is None:
        data = data.model_copy(update={"sender_id": current_user.id})
    notifications = await NotificationService(db, gateway).create_bulk(data)
    return success_response(notifications, f"{len(notifications)} notificaciones creadas")


@router.get("/online-status/{user_id}", response_model=ApiResponse[OnlineStatusResponse])
async def get_online_status(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[OnlineStatusResponse]:
    return success_response(PresenceService(db).get_status(user_id))


@router.get("/online-users", response_model=ApiResponse[list[OnlineStatusResponse]])
async def list_online_users(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[list[OnlineStatusResponse]]:
    return success_response(PresenceService(db).list_online_users())
