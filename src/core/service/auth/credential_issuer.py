from typing import Optional

from src.core.service.assets.models import QualifyingAsset
from src.core.service.auth.models.credentials import CredentialBundle
from src.core.service.auth.models.identity import IdentityRecord
from src.infra.config.settings import get_settings

settings = get_settings()


class CredentialIssuer:
    """Projects a stored identity into what the client logs in with"""

    def __init__(self, homeserver_url: Optional[str] = None):
        self.homeserver_url = homeserver_url or settings.MATRIX_SERVER_URL

    def issue(self, identity: IdentityRecord, is_new_user: bool) -> CredentialBundle:
        asset = None
        if identity.asset_mint:
            asset = QualifyingAsset(
                mint=identity.asset_mint,
                creator=identity.asset_creator or "",
                name=identity.asset_name,
                image=identity.asset_image
            )

        return CredentialBundle(
            chat_user_id=identity.chat_user_id,
            pseudonym=identity.pseudonym,
            secret=identity.chat_secret,
            homeserver_url=self.homeserver_url,
            asset=asset,
            is_new_user=is_new_user
        )
