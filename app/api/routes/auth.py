from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter, Depends, Request, status

from app.api.dependencies import current_user
from app.core.logging import logger
from app.core.utils import get_client_ip
from app.domain.user import User
from app.schemas_pydantic.user import (
    LoginResponse,
    MessageResponse,
    ProfileResponse,
    RegisterResponse,
    UserCreate,
    UserLogin,
    UserProfile,
    UserSummary,
)
from app.services.auth_service import AuthService

router = APIRouter(tags=["authentication"],
                   route_class=DishkaRoute)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
        request: Request,
        user: UserCreate,
        auth_service: FromDishka[AuthService],
) -> RegisterResponse:
    logger.info(
        "Registration attempt",
        extra={
            "username": user.username,
            "client_ip": get_client_ip(request),
            "endpoint": "/register",
        },
    )

    created_user = await auth_service.register(user.username, str(user.email), user.password)
    return RegisterResponse(user_id=created_user.id)


@router.post("/login", response_model=LoginResponse)
async def login(
        request: Request,
        credentials: UserLogin,
        auth_service: FromDishka[AuthService],
) -> LoginResponse:
    client_ip = get_client_ip(request)
    result = await auth_service.login(credentials.username, credentials.password, client_ip)

    return LoginResponse(
        token=result.token,
        user=UserSummary(id=result.user.id, username=result.user.username, email=result.user.email),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
        request: Request,
        auth_service: FromDishka[AuthService],
        user: User = Depends(current_user),
) -> MessageResponse:
    await auth_service.logout(user, get_client_ip(request))
    return MessageResponse(message="Logout successful")


@router.get("/profile", response_model=ProfileResponse)
async def profile(
        auth_service: FromDishka[AuthService],
        user: User = Depends(current_user),
) -> ProfileResponse:
    stored = await auth_service.get_profile(user.id)
    return ProfileResponse(
        user=UserProfile(
            id=stored.id,
            username=stored.username,
            email=stored.email,
            created_at=stored.created_at,
        )
    )
