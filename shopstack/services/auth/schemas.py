"""Request/response models for the auth service."""
from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    session_id: str = Field(..., alias="sessionId")
    username: str


class VerifyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str
    session_id: str = Field(..., alias="sessionId")


class LogoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")


class MessageResponse(BaseModel):
    message: str
