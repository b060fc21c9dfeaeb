from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from conectado.auth.dependencies import require_admin
from conectado.auth.models.user import User
from conectado.auth.schemas.user import UserListResponse, UserResponse
from conectado.core.exceptions import NotFoundError, ValidationError
from conectado.core.schemas import ApiResponse, success_response
from conectado.db.session import get_db

router = APIRouter()


@router.get("/users", response_model=ApiResponse[UserListResponse])
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    role: str | None = None,
    is_active: bool | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> ApiResponse[UserListResponse]:
    query = db.query(User)
    if role is not None:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)

    total = query.count()
    users = query.order_by(User.created_at.desc()).offset(skip).limit(limit).all()

    return success_response(
        UserListResponse(total=total, users=[UserResponse.model_validate(u) for u in users])
    )


def _set_active(db: Session, user_id: int, is_active: bool) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("Usuario no encontrado", resource="user")
    user.is_active = is_active
    db.commit()
    db.refresh(user)
    return user


@router.put("/users/{user_id}/deactivate", response_model=ApiResponse[UserResponse])
async def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> ApiResponse[UserResponse]:
    if user_id == current_user.id:
        raise ValidationError("No puedes desactivar tu propia cuenta")
    user = _set_active(db, user_id, False)
    return success_response(UserResponse.model_validate(user), "Usuario desactivado")


@router.put("/users/{user_id}/activate", response_model=ApiResponse[UserResponse])
async def activate_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> ApiResponse[UserResponse]:
    user = _set_active(db, user_id, True)
    return success_response(UserResponse.model_validate(user), "Usuario activado")
