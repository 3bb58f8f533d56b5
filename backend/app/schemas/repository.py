from datetime import datetime
from typing import Optional

from app.schemas.base import CamelModel


class RepositoryResponse(CamelModel):
    id: int
    name: str
    url: str
    is_private: bool = False
    description: Optional[str] = None
    default_branch: Optional[str] = None
    pushed_at: Optional[datetime] = None


class RepositoryFile(CamelModel):
    name: str
    path: str
    type: str
    sha: str
    size: int = 0


class FileContent(CamelModel):
    content: str
    sha: str
    name: str
    path: str
    size: int = 0
