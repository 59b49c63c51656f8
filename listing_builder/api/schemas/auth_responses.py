from pydantic import BaseModel


class SessionStatusResponse(BaseModel):
    authenticated: bool


class AuthorizationErrorResponse(BaseModel):
    detail: str
    error_type: str
    hint: str | None = None
