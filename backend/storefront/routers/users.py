from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field

from ..auth.dependencies import current_principal
from ..auth.security import Principal
from ..db.models import Role
from ..schemas import TokenOut, UserOut
from ..services import Services, get_services
from ..services.user_service import MIN_PASSWORD_LENGTH

router = APIRouter(tags=["users"])


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    role: Role = Role.USER


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


@router.post("/register", response_model=UserOut)
def register(body: RegisterRequest, services: Services = Depends(get_services)):
    return services.users.register(
        name=body.name,
        email=str(body.email),
        password=body.password,
        role=body.role,
    )


@router.post("/login", response_model=TokenOut)
def login(body: LoginRequest, services: Services = Depends(get_services)):
    return services.users.login(email=str(body.email), password=body.password)


@router.get("/me", response_model=UserOut)
def me(principal: Principal = Depends(current_principal), services: Services = Depends(get_services)):
    return services.users.get(principal.user_id)
