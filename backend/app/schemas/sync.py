from datetime import datetime
from typing import List, Optional
from pydantic import Field

from app.schemas.base import CamelModel


class SyncResponse(CamelModel):
    skipped: bool = Field(False, description="True when the last sync is recent and force was not set")
    profile_synced: bool = False
    repositories_synced: int = 0
    contributions_synced: int = 0
    errors: List[str] = Field(default_factory=list)
    last_synced_at: Optional[datetime] = None
