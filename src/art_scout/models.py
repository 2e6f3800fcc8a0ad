"""
Normalized Pydantic models for discovered artwork
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Dict, Any, Tuple
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Chain(str, Enum):
    """Chains an artwork or a listing can live on"""
    BASE = "base"
    ETHEREUM = "ethereum"

    @classmethod
    def from_string(cls, chain_str: str) -> "Chain":
        """Convert string to Chain enum"""
        chain_str = chain_str.lower().strip()
        mapping = {
            "base": cls.BASE,
            "base-mainnet": cls.BASE,
            "eth": cls.ETHEREUM,
            "ethereum": cls.ETHEREUM,
            "mainnet": cls.ETHEREUM,
        }
        return mapping.get(chain_str, cls.BASE)


class TokenStandard(str, Enum):
    """Single-supply (ERC721) or multi-supply with balance (ERC1155)"""
    SINGLE = "ERC721"
    MULTI = "ERC1155"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "TokenStandard":
        if value and value.upper() in ("ERC1155", "ERC-1155"):
            return cls.MULTI
        return cls.SINGLE


class Confidence(str, Enum):
    """Whether a price comes from a real listing or is an estimate"""
    REAL = "real"
    ESTIMATED = "estimated"


class SourceTag(str, Enum):
    """Which fetcher produced a candidate"""
    CONTRACT = "contract"
    WALLET = "wallet"
    ORDERBOOK = "orderbook"
    FALLBACK = "fallback"


class OriginTag(str, Enum):
    """How a contract got into the registry"""
    MANUAL = "manual"
    WALLET = "wallet"


class DataSource(str, Enum):
    """Where a discovery response came from"""
    LIVE = "live"
    CACHE = "cache"
    FALLBACK = "fallback"


class PriceQuote(BaseModel):
    """A sale price attached to exactly one artwork"""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    amount: str  # decimal string, never a float
    currency: str = "ETH"
    marketplace: str
    chain: Chain = Chain.BASE
    confidence: Confidence = Confidence.REAL

    @field_validator("amount", mode="before")
    @classmethod
    def _check_amount(cls, value: Any) -> str:
        if isinstance(value, float):
            raise ValueError("amount must be a decimal string, not a float")
        try:
            parsed = Decimal(str(value))
        except (InvalidOperation, TypeError):
            raise ValueError(f"amount is not a decimal: {value!r}")
        if not parsed.is_finite() or parsed < 0:
            raise ValueError(f"amount must be a non-negative decimal: {value!r}")
        return str(value)

    @property
    def decimal_amount(self) -> Decimal:
        return Decimal(self.amount)

    @property
    def is_real(self) -> bool:
        return self.confidence == Confidence.REAL


class ArtworkCandidate(BaseModel):
    """A discovered artwork record before (or alongside) price resolution"""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    # Identity
    contract_address: str
    token_id: str

    token_standard: TokenStandard = TokenStandard.SINGLE
    name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    owner: Optional[str] = None  # owner, or seller for order-book items
    collection_name: Optional[str] = None
    artist: Optional[str] = None
    platform: str = "Independent"

    # Multi-supply tokens
    balance: Optional[int] = None
    total_supply: Optional[int] = None

    source: SourceTag
    # Set only by the order-book fetcher, which knows the price at fetch time
    listed_price: Optional[PriceQuote] = None

    raw: Dict[str, Any] = Field(default_factory=dict, repr=False, exclude=True)

    @field_validator("contract_address")
    @classmethod
    def _lowercase_address(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def identity(self) -> Tuple[str, str]:
        return self.contract_address, self.token_id

    @property
    def is_one_of_one(self) -> bool:
        """ERC721 is always a 1/1; ERC1155 only with balance 1 and supply 1"""
        if self.token_standard == TokenStandard.SINGLE:
            return True
        return (self.balance or 1) == 1 and (self.total_supply or 1) == 1


class PricedArtwork(BaseModel):
    """An artwork paired with the price that makes it show up as for sale"""

    model_config = ConfigDict(frozen=True)

    artwork: ArtworkCandidate
    price: PriceQuote


class ContractRegistryEntry(BaseModel):
    """One address in the contract registry"""

    model_config = ConfigDict(use_enum_values=True)

    address: str
    name: Optional[str] = None
    added_by: Optional[str] = None
    added_at: datetime
    origin: OriginTag = OriginTag.MANUAL
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RegistryAddResult(BaseModel):
    address: str
    is_new: bool


class AddManyResult(BaseModel):
    """Outcome of a non-atomic bulk add; partial success is normal"""
    added: List[str] = Field(default_factory=list)
    existing: List[str] = Field(default_factory=list)


class WalletImportResult(BaseModel):
    wallet_address: str
    method: Optional[str] = None  # "indexer" or "user-provided"
    contracts_found: List[str] = Field(default_factory=list)
    added: List[str] = Field(default_factory=list)
    existing: List[str] = Field(default_factory=list)
    total_contracts: int = 0
    message: Optional[str] = None

    @property
    def success(self) -> bool:
        return bool(self.contracts_found)


class AddressValidation(BaseModel):
    """Format check plus a best-effort look at what the indexer knows"""
    address: str
    valid: bool
    message: str
    nft_count: Optional[int] = None
    warning: Optional[str] = None


class PlatformInfo(BaseModel):
    id: str
    name: str
    description: str
    contract_addresses: List[str] = Field(default_factory=list)
    url: Optional[str] = None


class DiscoveryResponse(BaseModel):
    """What the presentation layer gets back from discover()"""

    model_config = ConfigDict(use_enum_values=True)

    items: List[PricedArtwork]
    source: DataSource
    from_cache: bool = False
    total: int = 0
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    message: Optional[str] = None
    unpriced: List[ArtworkCandidate] = Field(default_factory=list)


class ScoutStats(BaseModel):
    total_contracts: int = 0
    contracts_added: int = 0
    contracts_removed: int = 0
    cache_entries: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
