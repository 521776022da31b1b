from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from blog_api.database import get_db
from blog_api.dependencies import get_token_service, require_caller
from blog_api.guard import CallerIdentity
from blog_api.schemas import (
    AuthResponse, LoginRequest, MessageResponse, RegisterRequest,
    SendVerificationCodeRequest, UserResponse, VerifyCodeRequest,
)
from blog_api.services import auth_service
from blog_api.tokens import TokenService

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

@router.post("/register", status_code=201, response_model=AuthResponse)
async def register(
    data: RegisterRequest,
    tokens: TokenService = Depends(get_token_service),
    db: AsyncSession = Depends(get_db, scope="function"),
):
    return await auth_service.register(db, data, tokens)

@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    tokens: TokenService = Depends(get_token_service),
    db: AsyncSession = Depends(get_db, scope="function"),
):
    return await auth_service.login(db, data, tokens)

@router.get("/profile", response_model=UserResponse)
async def profile(
    caller: CallerIdentity = Depends(require_caller),
    db: AsyncSession = Depends(get_db, scope="function"),
):
    return await auth_service.get_profile(db, caller)

@router.post("/verification-code", response_model=MessageResponse)
async def send_verification_code(
    data: SendVerificationCodeRequest,
    db: AsyncSession = Depends(get_db, scope="function"),
):
    await auth_service.send_verification_code(db, data.email)
    return {"message": "Verification code sent"}

@router.post("/verify-code", response_model=MessageResponse)
async def verify_code(data: VerifyCodeRequest):
    await auth_service.verify_code(data.email, data.code)
    return {"message": "Email verified"}
