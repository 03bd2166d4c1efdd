# schemas/auth_schemas.py
from pydantic import BaseModel, EmailStr, constr

class UserRegister(BaseModel):
    email: EmailStr
    password: constr(min_length=8)
    name: constr(strip_whitespace=True, min_length=1, max_length=255)

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

class TokenRefresh(BaseModel):
    refresh_token: str
