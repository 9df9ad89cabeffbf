"""Authentication API routes."""

from fastapi import APIRouter, Depends, Response, status

from filehub.auth import get_session_token
from filehub.schemas.auth import (
    RegisterRequest,
    RegisterResponse,
    LoginRequest,
    LoginResponse,
    SessionResponse
)
from filehub.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest):
    """
    Register a new Client account with the default storage allocation.

    Raises:
        - 400: Username already exists
    """
    user_id = AuthService().register_user(request.username, request.password)
    return RegisterResponse(user_id=user_id)


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest):
    """
    Authenticate user and open a new session.

    Returns:
        - token: Session token to send as "Authorization: Bearer <token>"

    Raises:
        - 401: Invalid credentials
    """
    token = AuthService().login_user(request.username, request.password)
    return LoginResponse(token=token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(token: str = Depends(get_session_token)):
    """
    Close the caller's session. Unknown tokens are ignored.
    """
    AuthService().logout(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/session", response_model=SessionResponse)
def validate_session(token: str = Depends(get_session_token)):
    """
    Check a session token and return who it belongs to.

    Raises:
        - 401: Invalid or expired session
    """
    identity = AuthService().validate_session(token)
    return SessionResponse(username=identity.username, role=identity.role)
