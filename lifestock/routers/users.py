from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from lifestock.middlewares.auth_middleware import get_current_user, AuthState
from lifestock.services.auth_service import AuthService, get_auth_service
from lifestock.schemas.user_schemas import LoginRequest, RegisterRequest
from lifestock.utils.responses import ResponseBuilder
from lifestock.utils.errors import BusinessLogicError
from lifestock.utils.error_handlers import handle_service_error

users_router = APIRouter()


@users_router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    description="Register a user and return an access token",
)
async def register(
    request: Request,
    register_data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    try:
        auth_response = await auth_service.register(register_data)

        return ResponseBuilder.success(
            request=request,
            data=auth_response.model_dump(by_alias=True),
            message="Account created successfully",
            status_code=status.HTTP_201_CREATED,
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to register user", error_code="REGISTRATION_FAILED"
        )


@users_router.post(
    "/login",
    summary="Log in",
    description="Exchange email and password for an access token",
)
async def login(
    request: Request,
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    try:
        auth_response = await auth_service.login(login_data)

        return ResponseBuilder.success(
            request=request,
            data=auth_response.model_dump(by_alias=True),
            message="Logged in successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(message="Failed to log in", error_code="LOGIN_FAILED")


@users_router.get("/me", summary="Current user profile")
async def get_me(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    auth_service: AuthService = Depends(get_auth_service),
):
    try:
        profile = await auth_service.get_profile(current_user.user_uuid)

        return ResponseBuilder.success(
            request=request,
            data=profile.model_dump(by_alias=True),
            message="Profile retrieved successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve profile", error_code="PROFILE_RETRIEVAL_FAILED"
        )
