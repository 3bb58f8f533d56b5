from typing import Optional
from pydantic import BaseModel


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    user_id: Optional[int] = None


class AuthorizeUrl(BaseModel):
    authorize_url: str
    state: str


class User(BaseModel):
    id: int
    github_username: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool = True

    class Config:
        from_attributes = True
