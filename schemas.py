"""
Database Schemas for the Minecraft store

Each stored model corresponds to a MongoDB collection (lowercased class name):
- Product -> "product"  (document _id is the product slug)
- Order   -> "order"    (document _id is the order id)

Documents are stored with snake_case keys. Order models serialize to camelCase
for the HTTP API.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Category(str, Enum):
    RANKS = "ranks"
    KITS = "kits"
    KEYS = "keys"
    MISC = "misc"


class Edition(str, Enum):
    JAVA = "java"
    BEDROCK = "bedrock"


class OrderStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    REJECTED = "rejected"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )


class Product(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(..., description="Slug, unique and immutable once created")
    name: str = Field(..., description="Display name")
    price: float = Field(..., ge=0, description="Price in store currency")
    category: Category = Field(..., description="ranks, kits, keys or misc")
    description: str = Field("", description="One-liner shown under the name")
    perks: List[str] = Field(default_factory=list, description="Ordered list of benefits")
    badge: Optional[str] = Field(None, description="Label such as Popular, Hot, New")
    popular: bool = Field(False, description="Shows a star indicator")
    image: Optional[str] = Field(None, description="Public image path or URL")


class ProductIn(BaseModel):
    """Admin payload for creating or editing a product. The id is never accepted."""

    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    category: Category
    description: str = ""
    perks: List[str] = Field(default_factory=list)
    badge: Optional[str] = None
    popular: bool = False
    image: Optional[str] = None


class OrderItem(CamelModel):
    product_id: str
    name: str = Field(..., description="Snapshot of the product name at intake")
    unit_price: float = Field(..., ge=0, description="Catalog price at intake")
    quantity: int = Field(..., ge=1)
    line_total: float = Field(..., ge=0)


class Order(CamelModel):
    order_id: str
    minecraft_username: str
    edition: Edition
    transaction_reference: str = Field(..., pattern=r"^[0-9]{12}$")
    items: List[OrderItem]
    total: float = Field(..., ge=0)
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime
    updated_at: datetime


# --------- Checkout submission (client -> intake) ---------

class CheckoutItemIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field("", validation_alias=AliasChoices("id", "productId", "product_id"))
    quantity: Any = None
    # Accepted so old clients keep working, never used for pricing
    price: Any = None


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    minecraft_username: Optional[str] = Field(
        None, validation_alias=AliasChoices("minecraftUsername", "minecraft_username")
    )
    edition: Optional[str] = None
    transaction_reference: Optional[str] = Field(
        None, validation_alias=AliasChoices("transactionReference", "utrNumber", "transaction_reference")
    )
    items: Optional[List[CheckoutItemIn]] = None


class CheckoutResponse(CamelModel):
    success: bool = True
    order_id: str
    minecraft_username: str
    edition: Edition
    total: float
    item_count: int
    items: List[OrderItem]
    message: str
