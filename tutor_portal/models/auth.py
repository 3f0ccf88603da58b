# tutor_portal/models/auth.py
from pydantic import BaseModel

class SessionUser(BaseModel):
    id: str = "1"
    name: str = "User"
    email: str = ""

class VerifyResponse(BaseModel):
    jwt: str
    token: str
    authenticated: bool = True
    user: SessionUser

class LogoutResponse(BaseModel):
    success: bool
