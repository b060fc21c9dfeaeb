import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from conectado.auth.dependencies import get_current_user
from conectado.auth.models.user import User
from conectado.auth.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from conectado.auth.schemas.user import UserResponse
from conectado.core import security
from conectado.core.config import settings
from conectado.core.exceptions import ConflictError
from conectado.core.rate_limit import limiter
from conectado.core.schemas import ApiResponse, success_response
from conectado.db.session import get_db
from conectado.notifications.services import templates
from conectado.notifications.services.notification_service import NotificationService
from conectado.realtime.gateway import PushGateway, get_gateway

logger = logging.getLogger(__name__)

router = APIRouter()


def _token_response(user: User) -> TokenResponse:
    token_data = {"sub": str(user.id), "email": user.email, "role": user.role}
    return TokenResponse(
        access_token=security.create_access_token(token_data),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register",
    response_model=ApiResponse[TokenResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[TokenResponse]:
    if db.query(User.id).filter(User.email == data.email).first() is not None:
        raise ConflictError("El email ya está registrado", resource="user")

    user = User(
        email=data.email,
        hashed_password=security.get_password_hash(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User %s registered with role %s", user.id, user.role)

    try:
        await NotificationService(db, gateway).create(templates.welcome(user.id, user.full_name))
    except Exception:
        logger.exception("Failed to send welcome notification to user %s", user.id)
        db.rollback()

    return success_response(_token_response(user), "Registro exitoso")


@router.post("/login", response_model=ApiResponse[TokenResponse])
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: Session = Depends(get_db),
) -> ApiResponse[TokenResponse]:
    user = db.query(User).filter(User.email == credentials.email).first()

    if not user or not security.verify_password(credentials.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email o contraseña incorrectos",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="La cuenta está desactivada"
        )

    return success_response(_token_response(user), "Inicio de sesión exitoso")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(current_user: User = Depends(get_current_user)) -> ApiResponse[UserResponse]:
    return success_response(UserResponse.model_validate(current_user))
