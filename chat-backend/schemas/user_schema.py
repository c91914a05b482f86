from pydantic import BaseModel, Field
from typing import Optional


# --- Output Schemas ---
class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class UserPublic(BaseModel):
    """What other users may see in search results."""
    id: str
    username: str
    photo_url: Optional[str] = Field(alias="photoURL", default=None)

    class Config:
        populate_by_name = True
        from_attributes = True
