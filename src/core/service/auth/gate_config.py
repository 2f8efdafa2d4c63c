"""
Gate configuration: who may register.

An immutable snapshot handed to the orchestrator. Reloading builds a new snapshot
and swaps the reference, so in-flight requests keep the one they started with.
"""

from pathlib import Path
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.infra.config.settings import Settings, get_settings
from src.core.logger.logger import get_logger

logger = get_logger(__name__)

ELIGIBILITY_NFT = "nft"
ELIGIBILITY_ALLOWLIST = "allowlist"


def split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def load_wallet_file(path: str) -> List[str]:
    """
    Read an allow-list file: one entry per line, wallet in the first
    whitespace-separated column. Blank lines and '#' comments are skipped.
    """
    wallets = []
    file_path = Path(path)
    if not file_path.is_file():
        logger.warning("Approved wallets file not found", extra={"path": path})
        return wallets

    for line in file_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        wallets.append(line.split()[0])
    return wallets


class GateConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    authorized_creators: FrozenSet[str] = Field(default_factory=frozenset)
    approved_wallets: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Lower-cased wallet addresses"
    )
    eligibility_policy: Dict[str, str] = Field(
        default_factory=lambda: {"solana": ELIGIBILITY_NFT, "evm": ELIGIBILITY_ALLOWLIST}
    )
    main_room_id: Optional[str] = None

    @classmethod
    def build(
        cls,
        authorized_creators=(),
        approved_wallets=(),
        eligibility_policy: Optional[Dict[str, str]] = None,
        main_room_id: Optional[str] = None
    ) -> "GateConfig":
        data = {
            "authorized_creators": frozenset(c.strip() for c in authorized_creators if c.strip()),
            "approved_wallets": frozenset(w.strip().lower() for w in approved_wallets if w.strip()),
            "main_room_id": main_room_id,
        }
        if eligibility_policy is not None:
            data["eligibility_policy"] = {k.lower(): v.lower() for k, v in eligibility_policy.items()}
        return cls(**data)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GateConfig":
        settings = settings or get_settings()
        wallets = split_csv(settings.APPROVED_WALLETS)
        if settings.APPROVED_WALLETS_FILE:
            wallets.extend(load_wallet_file(settings.APPROVED_WALLETS_FILE))

        config = cls.build(
            authorized_creators=split_csv(settings.AUTHORIZED_NFT_CREATORS),
            approved_wallets=wallets,
            eligibility_policy=settings.ELIGIBILITY_POLICY,
            main_room_id=settings.MAIN_ROOM_ID,
        )
        logger.info(
            "Gate configuration loaded",
            extra={
                "authorized_creators": len(config.authorized_creators),
                "approved_wallets": len(config.approved_wallets),
                "eligibility_policy": config.eligibility_policy
            }
        )
        return config

    def policy_for(self, protocol: str) -> Optional[str]:
        return self.eligibility_policy.get(protocol)

    def is_approved(self, wallet_address: str) -> bool:
        return wallet_address.strip().lower() in self.approved_wallets
