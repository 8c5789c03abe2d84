from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Optional, List, Literal, Union


class Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# --------------------------------------------------------------------------- #
# Identifiers
# --------------------------------------------------------------------------- #

class SkuCode(Frozen):
    kind: Literal["sku"] = "sku"
    value: str                   # exactly 6 digits

class InternalCode(Frozen):
    kind: Literal["internal"] = "internal"
    raw_value: str
    extracted_sku: str           # first 6 digits of raw_value

class ProductUrl(Frozen):
    kind: Literal["url"] = "url"
    value: str

class UpcCode(Frozen):
    kind: Literal["upc"] = "upc"
    value: str

class FreeText(Frozen):
    kind: Literal["text"] = "text"
    value: str

Identifier = Annotated[
    Union[SkuCode, InternalCode, ProductUrl, UpcCode, FreeText],
    Field(discriminator="kind"),
]


def search_text(identifier) -> str:
    """Text sent to the catalog search for this identifier."""
    if isinstance(identifier, InternalCode):
        return identifier.extracted_sku
    return identifier.value


def nominal_sku(identifier) -> Optional[str]:
    """SKU the user asked for, when the identifier carries one."""
    if isinstance(identifier, SkuCode):
        return identifier.value
    if isinstance(identifier, InternalCode):
        return identifier.extracted_sku
    return None


class StoreContext(Frozen):
    store_id: str = "071"


# --------------------------------------------------------------------------- #
# Product record
# --------------------------------------------------------------------------- #

class SpecEntry(Frozen):
    label: str
    value: str
    group: Optional[str] = None

class ServiceOffer(Frozen):
    name: str
    price: float

class StockInfo(Frozen):
    stock_text: Optional[str] = None
    stock_count: int = Field(default=0, ge=0)
    in_stock: bool = False
    store_name: Optional[str] = None

class Reviews(Frozen):
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    count: int = Field(default=0, ge=0)


class ProductFields(Frozen):
    """Everything read off a detail page, before identity is attached."""
    name: str = ""
    brand: str = ""
    price: Optional[str] = None          # display string, e.g. "$399.99"
    original_price: Optional[str] = None
    savings: Optional[str] = None
    stock: StockInfo = StockInfo()
    location: Optional[str] = None
    mfr_part: str = ""
    upc: str = ""
    specs: List[SpecEntry] = []
    reviews: Reviews = Reviews()
    installation: List[ServiceOffer] = []
    protection: List[ServiceOffer] = []


class ProductRecord(Frozen):
    sku: str
    product_id: str              # canonical retailer id, addresses the detail page
    url: str
    name: str                    # display name, brand prefixed when missing
    brand: str = ""
    price: Optional[str] = None
    original_price: Optional[str] = None
    savings: Optional[str] = None
    stock: StockInfo = StockInfo()
    location: Optional[str] = None
    mfr_part: str = ""
    upc: str = ""
    image_urls: List[str] = []   # primary image first
    specs: List[SpecEntry] = []
    display_specs: List[str] = []
    reviews: Reviews = Reviews()
    installation: List[ServiceOffer] = []
    protection: List[ServiceOffer] = []

    @property
    def image_url(self) -> Optional[str]:
        return self.image_urls[0] if self.image_urls else None


# --------------------------------------------------------------------------- #
# Search listing
# --------------------------------------------------------------------------- #

class SearchHit(Frozen):
    sku: str
    name: str
    price: Optional[str] = None
    url: str
    image_url: Optional[str] = None
    stock_text: Optional[str] = None

class SearchListing(Frozen):
    query: str
    hits: List[SearchHit] = []
    single_url: Optional[str] = None     # search redirected straight to a product


# --------------------------------------------------------------------------- #
# Resolution outcomes
# --------------------------------------------------------------------------- #

class Found(Frozen):
    kind: Literal["found"] = "found"
    record: ProductRecord

class NoResults(Frozen):
    kind: Literal["no_results"] = "no_results"
    searched: str

class Mismatch(Frozen):
    kind: Literal["mismatch"] = "mismatch"
    searched: str
    found: str

class Blocked(Frozen):
    kind: Literal["blocked"] = "blocked"
    message: str = "Blocked by bot protection"

class TransientError(Frozen):
    kind: Literal["transient_error"] = "transient_error"
    message: str

ResolutionOutcome = Annotated[
    Union[Found, NoResults, Mismatch, Blocked, TransientError],
    Field(discriminator="kind"),
]

PriorDecision = Literal["accept-redirect", "reject"]
