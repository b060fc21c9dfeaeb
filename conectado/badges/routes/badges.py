from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from conectado.auth.dependencies import get_current_user, require_admin
from conectado.auth.models.user import User
from conectado.badges.schemas.badge import (
    AwardBadgeRequest,
    BadgeCreate,
    BadgeHolder,
    BadgeResponse,
    BadgeStats,
    BadgeUpdate,
)
from conectado.badges.services.badge_service import BadgeService
from conectado.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from conectado.core.exceptions import NotFoundError
from conectado.core.schemas import ApiResponse, failure_response, success_response
from conectado.db.session import get_db
from conectado.notifications.services.notification_service import NotificationService
from conectado.realtime.gateway import PushGateway, get_gateway

router = APIRouter()


def get_badge_service(
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> BadgeService:
    return BadgeService(db, NotificationService(db, gateway))


@router.get("", response_model=ApiResponse[list[BadgeResponse]])
async def list_badges(
    current_user: User = Depends(get_current_user),
    service: BadgeService = Depends(get_badge_service),
) -> ApiResponse[list[BadgeResponse]]:
    return success_response(service.list_badges())


@router.get("/my-badges", response_model=ApiResponse[list[BadgeResponse]])
async def list_my_badges(
    current_user: User = Depends(get_current_user),
    service: BadgeService = Depends(get_badge_service),
) -> ApiResponse[list[BadgeResponse]]:
    return success_response(service.list_user_badges(current_user.id))


@router.get("/available", response_model=ApiResponse[list[BadgeResponse]])
async def list_available_badges(
    current_user: User = Depends(get_current_user),
    service: BadgeService = Depends(get_badge_service),
) -> ApiResponse[list[BadgeResponse]]:
    return success_response(service.list_available(current_user.id))


@router.get("/stats", response_model=ApiResponse[BadgeStats])
async def get_badge_stats(
    current_user: User = Depends(get_current_user),
    service: BadgeService = Depends(get_badge_service),
) -> ApiResponse[BadgeStats]:
    return success_response(service.get_stats())


@router.get("/user/{user_id}", response_model=ApiResponse[list[BadgeResponse]])
async def list_user_badges(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: BadgeService = Depends(get_badge_service),
) -> ApiResponse[list[BadgeResponse]]:
    return success_response(service.list_user_badges(user_id))


@router.post("/check-automatic", response_model=ApiResponse[list[BadgeResponse]])
async def check_automatic_badges(
    current_user: User = Depends(get_current_user),
    service: BadgeService = Depends(get_badge_service),
) -> ApiResponse[list[BadgeResponse]]:
    awarded = await service.check_automatic(current_user.id)
    return success_response(awarded, f"{len(awarded)} insignias nuevas")


@router.post("/award", response_model=ApiResponse[None])
async def award_badge(
    data: AwardBadgeRequest,
    current_user: User = Depends(require_admin),
    service: BadgeService = Depends(get_badge_service),
) -> ApiResponse[None]:
    if not await service.award(data.user_id, data.badge_id, data.reason):
        return failure_response("El usuario ya tiene la insignia o no existe")
    return success_response(None, "Insignia otorgada")


@router.delete("/revoke/{user_id}/{badge_id}", response_model=ApiResponse[None])
async def revoke_badge(
    user_id: int,
    badge_id: int,
    current_user: User = Depends(require_admin),
    service: BadgeService = Depends(get_badge_service),
) -> ApiResponse[None]:
    if not service.revoke(user_id, badge_id):
        raise NotFoundError("El usuario no tiene esta insignia", resource="user_badge")
    return success_response(None, "Insignia revocada")


@router.post(
    "",
    response_model=ApiResponse[BadgeResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_badge(
    data: BadgeCreate,
    current_user: User = Depends(require_admin),
    service: BadgeService = Depends(get_badge_service),
) -> ApiResponse[BadgeResponse]:
    return success_response(service.create_badge(data), "Insignia creada")


@router.put("/{badge_id}", response_model=ApiResponse[BadgeResponse])
async def update_badge(
    badge_id: int,
    data: BadgeUpdate,
    current_user: User = Depends(require_admin),
    service: BadgeService = Depends(get_badge_service),
) -> ApiResponse[BadgeResponse]:
    return success_response(service.update_badge(badge_id, data), "Insignia actualizada")


@router.delete("/{badge_id}", response_model=ApiResponse[None])
async def delete_badge(
    badge_id: int,
    current_user: User = Depends(require_admin),
    service: BadgeService = Depends(get_badge_service),
) -> ApiResponse[None]:
    if not service.delete_badge(badge_id):
        raise NotFoundError("Insignia no encontrada", resource="badge")
    return success_response(None, "Insignia eliminada")


@router.get("/{badge_id}/holders", response_model=ApiResponse[list[BadgeHolder]])
async def list_badge_holders(
    badge_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    service: BadgeService = Depends(get_badge_service),
) -> ApiResponse[list[BadgeHolder]]:
    return success_response(service.list_holders(badge_id, page, page_size))
