from pydantic import BaseModel, Field
from typing import Optional

from src.core.service.assets.models import QualifyingAsset


class CredentialBundle(BaseModel):
    """What the client needs to log into the chat homeserver"""
    chat_user_id: str = Field(..., description="Matrix user id, e.g. @cosmicpioneer255:chat.ratimics.com")
    pseudonym: str = Field(..., description="Display name")
    secret: str = Field(..., description="Chat account password")
    homeserver_url: str
    asset: Optional[QualifyingAsset] = None
    is_new_user: bool
