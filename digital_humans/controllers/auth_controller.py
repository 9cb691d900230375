from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from digital_humans.core.database import get_db
from digital_humans.schemas.user import LoginRequest, RegisterRequest, TokenRequest, VerifyResponse
from digital_humans.services.auth_service import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/register")
async def register(data: RegisterRequest, db: Session = Depends(get_db)):
    return auth_service.register(db, data).to_payload()

@router.post("/login")
async def login(data: LoginRequest, db: Session = Depends(get_db)):
    return auth_service.login(db, data.email, data.password).to_payload()

@router.post("/verify")
async def verify(data: TokenRequest, db: Session = Depends(get_db)):
    user = auth_service.verify_token(db, data.token)
    return VerifyResponse(user=user).to_payload()

@router.post("/refresh")
async def refresh(data: TokenRequest, db: Session = Depends(get_db)):
    return auth_service.refresh_token(db, data.token).to_payload()

@router.post("/guest")
async def guest_login(db: Session = Depends(get_db)):
    return auth_service.authenticate_guest(db).to_payload()
