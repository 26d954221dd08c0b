# attendance_api/routers/auth.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_api.models.user import User
from attendance_api.schemas.user import SignupRequest, LoginRequest, EmployeeLoginRequest, AuthResponse, ProfileResponse
from attendance_api.database import get_db
from attendance_api.utils.password import verify_password
from attendance_api.core.security import create_user_token
from attendance_api.core.auth import get_current_user
from attendance_api.core.enums import Role
from attendance_api.core.exceptions import AuthError
from attendance_api.services import users


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(user_in: SignupRequest, db: AsyncSession = Depends(get_db)):
    # Public signup only ever creates employees; admins come from the admin panel or bootstrap
    user = await users.create_user(
        db,
        name=user_in.name,
        mobile_number=user_in.mobile_number,
        employee_id=user_in.employee_id,
        password=user_in.password,
        role=Role.EMPLOYEE,
    )
    return AuthResponse(
        message="User registered successfully",
        token=create_user_token(user),
        user=user
    )


@router.post("/login", response_model=AuthResponse)
async def login(login_in: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await users.find_by_identifier(db, login_in.identifier.strip())

    if not user:
        raise AuthError("Invalid credentials")
    if not user.is_active:
        raise AuthError("Account has been deactivated. Contact administrator.")
    if not verify_password(login_in.password, user.password_hash):
        raise AuthError("Invalid credentials")

    return AuthResponse(
        message="Login successful",
        token=create_user_token(user),
        user=user
    )


@router.post("/login-employee", response_model=AuthResponse)
async def login_employee(login_in: EmployeeLoginRequest, db: AsyncSession = Depends(get_db)):
    """Quick login by employee ID alone. Admin accounts must use /auth/login."""
    user = await users.find_by_employee_id(db, login_in.employee_id.strip())

    if not user:
        raise AuthError("Employee not found")
    if user.is_admin:
        raise AuthError("Admin accounts must sign in with a password")
    if not user.is_active:
        raise AuthError("Account has been deactivated. Contact administrator.")

    return AuthResponse(
        message="Login successful",
        token=create_user_token(user),
        user=user
    )


@router.get("/me", response_model=ProfileResponse)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return ProfileResponse(user=current_user)
