"""
Authentication and profile API endpoints.
Handles registration, login, password changes and the caller's profile.
"""

from fastapi import APIRouter, Depends, status

from banking.api.deps import get_current_caller, get_services, request_deadline
from banking.core.security import Caller
from banking.schemas.user import (
    LoginRequest, PasswordChange, ProfileUpdate, TokenResponse, UserCreate, UserResponse,
)
from banking.services import BankingServices

router = APIRouter(tags=["Auth"])


@router.post("/auth/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserCreate,
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Register a new user.

    - **username**: Unique login name
    - **password**: At least 8 characters
    - **email**: Unique email address
    """
    return services.identity.register(
        user_data.username,
        user_data.password,
        user_data.email,
        phone=user_data.phone,
        address=user_data.address,
        deadline=deadline,
    )


@router.post("/auth/login", response_model=TokenResponse)
def login(
    credentials: LoginRequest,
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Log in and receive a bearer token.
    """
    user = services.identity.authenticate(credentials.username, credentials.password, deadline=deadline)
    token = services.sessions.issue(user.id, user.username)
    return TokenResponse(access_token=token, user=user)


@router.post("/auth/password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    change: PasswordChange,
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Change the caller's password.
    """
    services.identity.change_password(
        caller.user_id, change.old_password, change.new_password, deadline=deadline
    )
    return None


@router.get("/users/me", response_model=UserResponse)
def get_profile(
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Get the caller's profile.
    """
    return services.identity.get_user(caller.user_id, deadline=deadline)


@router.put("/users/me", response_model=UserResponse)
def update_profile(
    profile: ProfileUpdate,
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Update the caller's email, phone and address.
    """
    return services.identity.update_profile(
        caller.user_id,
        profile.email,
        phone=profile.phone,
        address=profile.address,
        deadline=deadline,
    )
