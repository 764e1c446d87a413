"""Product catalog: admin product management and the price authority used at checkout."""

import re
from typing import Iterable, List, Optional, Tuple

import structlog

from errors import InvalidInput, ProductNotFound, UnknownProduct
from schemas import Category, OrderItem, Product, ProductIn
from stores import CatalogStore

logger = structlog.get_logger(__name__)

# --------- Seed Data ---------
DEFAULT_PRODUCTS = [
    {
        "id": "rank-warrior",
        "name": "Warrior Rank",
        "price": 4.99,
        "category": "ranks",
        "image": "/images/warrior-rank.png",
        "description": "Begin your journey with essential perks and a warrior title.",
        "perks": [
            "Custom [Warrior] chat prefix",
            "Access to /fly in lobby",
            "3 home set locations",
            "Colored chat messages",
            "Priority queue access",
        ],
        "badge": "Starter",
    },
    {
        "id": "rank-knight",
        "name": "Knight Rank",
        "price": 9.99,
        "category": "ranks",
        "image": "/images/knight-rank.png",
        "description": "Level up with powerful perks and exclusive cosmetics.",
        "perks": [
            "Custom [Knight] chat prefix",
            "Access to /fly everywhere",
            "5 home set locations",
            "Particle trail effects",
            "Monthly kit access",
            "Exclusive Knight armor skin",
        ],
        "popular": True,
        "badge": "Popular",
    },
    {
        "id": "rank-king",
        "name": "King Rank",
        "price": 19.99,
        "category": "ranks",
        "image": "/images/king-rank.png",
        "description": "Rule the server with maximum privileges and royal perks.",
        "perks": [
            "Custom [King] chat prefix",
            "All /fly permissions",
            "10 home set locations",
            "All particle effects",
            "Weekly premium kits",
            "Custom join message",
            "Pet companion system",
            "Priority support access",
        ],
        "badge": "Premium",
    },
    {
        "id": "rank-emperor",
        "name": "Emperor Rank",
        "price": 34.99,
        "category": "ranks",
        "image": "/images/emperor-rank.png",
        "description": "The ultimate rank. Unlock everything the server has to offer.",
        "perks": [
            "Custom [Emperor] chat prefix",
            "All permissions unlocked",
            "Unlimited home locations",
            "All cosmetics & trails",
            "Daily premium kits",
            "Custom nickname colors",
            "Exclusive Emperor mount",
            "VIP Discord channel access",
            "Beta feature testing",
        ],
        "badge": "Legendary",
        "popular": True,
    },
    {
        "id": "kit-starter",
        "name": "Starter Kit",
        "price": 2.99,
        "category": "kits",
        "image": "/images/starter-kit.png",
        "description": "Essential tools and armor to kickstart your adventure.",
        "perks": ["Iron armor set", "Iron sword & tools", "64x steak", "32x torches", "16x golden apples"],
    },
    {
        "id": "kit-pvp",
        "name": "PvP Master Kit",
        "price": 7.99,
        "category": "kits",
        "image": "/images/pvp-kit.png",
        "description": "Top-tier combat gear for dominating in PvP battles.",
        "perks": [
            "Diamond armor (Prot IV)",
            "Sharpness V diamond sword",
            "Power V bow + 64 arrows",
            "32x enchanted golden apples",
            "8x splash potions (Strength II)",
            "Ender pearls x16",
        ],
        "popular": True,
        "badge": "Best Seller",
    },
    {
        "id": "kit-builder",
        "name": "Builder's Kit",
        "price": 4.99,
        "category": "kits",
        "image": "/images/builder-kit.png",
        "description": "Everything you need to create stunning builds.",
        "perks": [
            "World Edit access (limited)",
            "Stack of every wood type",
            "Stack of every stone type",
            "Colored wool & concrete",
            "Glass panes & blocks",
            "Scaffolding x128",
        ],
    },
    {
        "id": "key-common",
        "name": "Common Crate Key",
        "price": 1.49,
        "category": "keys",
        "image": "/images/common-key.png",
        "description": "Unlock a common crate with basic but useful rewards.",
        "perks": ["Random iron gear piece", "16-64x food items", "Small money reward", "Common cosmetic chance"],
    },
    {
        "id": "key-rare",
        "name": "Rare Crate Key",
        "price": 3.49,
        "category": "keys",
        "image": "/images/rare-key.png",
        "description": "Better odds for diamond-tier loot and exclusive items.",
        "perks": [
            "Random diamond gear piece",
            "Enchanted books (Lvl 1-3)",
            "Medium money reward",
            "Rare cosmetic chance",
            "Experience bottle x32",
        ],
        "badge": "Value",
    },
    {
        "id": "key-legendary",
        "name": "Legendary Crate Key",
        "price": 7.99,
        "category": "keys",
        "image": "/images/legendary-key.png",
        "description": "Guaranteed top-tier rewards and exclusive legendary items.",
        "perks": [
            "Netherite gear chance",
            "Enchanted books (Lvl 4-5)",
            "Large money reward",
            "Legendary cosmetic guaranteed",
            "Custom weapon skin chance",
            "Exclusive particle effect",
        ],
        "popular": True,
        "badge": "Hot",
    },
    {
        "id": "misc-coins",
        "name": "5000 Server Coins",
        "price": 4.99,
        "category": "misc",
        "image": "/images/coins.png",
        "description": "In-game currency for the server shop and auctions.",
        "perks": ["5000 coin balance", "Use in server shop", "Bid in auctions", "Trade with players"],
    },
    {
        "id": "misc-pet",
        "name": "Custom Pet",
        "price": 6.99,
        "category": "misc",
        "image": "/images/pet.png",
        "description": "A loyal companion that follows you everywhere.",
        "perks": [
            "Choose from 15+ pet types",
            "Custom pet name & color",
            "Pet level-up system",
            "Pet particle trail",
            "Show off in /pet menu",
        ],
        "badge": "New",
    },
    {
        "id": "misc-nickname",
        "name": "Custom Nickname",
        "price": 2.49,
        "category": "misc",
        "image": "/images/nickname.png",
        "description": "Stand out with a fully customizable colored nickname.",
        "perks": ["Full RGB color support", "Gradient nickname option", "Bold & italic formatting", "Change anytime with /nick"],
    },
]

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    return _NON_SLUG.sub("-", name.lower()).strip("-")


def line_total(price: float, quantity: int) -> float:
    return round(price * quantity, 2)


def order_total(items: Iterable[OrderItem]) -> float:
    return round(sum(item.line_total for item in items), 2)


class Catalog:
    """Reads and admin edits over a CatalogStore.

    ``price_items`` is the only place checkout gets money amounts from: every
    line is priced from the stored product, whatever the client sent.
    """

    def __init__(self, store: CatalogStore):
        self.store = store

    def list_products(self, category: Optional[str] = None) -> List[Product]:
        if category in (None, "", "all"):
            return self.store.list_products()
        if category not in {c.value for c in Category}:
            raise InvalidInput(f"Unknown category: {category}")
        return self.store.list_products(category)

    def get_product(self, product_id: str) -> Product:
        product = self.store.get_product(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def price_items(self, lines: Iterable[Tuple[str, int]]) -> List[OrderItem]:
        priced = []
        for product_id, quantity in lines:
            product = self.store.get_product(product_id)
            if product is None:
                raise UnknownProduct(product_id)
            priced.append(
                OrderItem(
                    product_id=product.id,
                    name=product.name,
                    unit_price=product.price,
                    quantity=quantity,
                    line_total=line_total(product.price, quantity),
                )
            )
        return priced

    # --------- Admin ---------

    def add_product(self, data: ProductIn) -> Product:
        slug = slugify(data.name)
        if not slug:
            raise InvalidInput("Product name must contain letters or numbers.")
        product = Product(id=slug, **data.model_dump())
        self.store.insert_product(product)
        logger.info("Product added", product_id=slug, price=product.price)
        return product

    def update_product(self, product_id: str, data: ProductIn) -> Product:
        product = Product(id=product_id, **data.model_dump())
        if not self.store.replace_product(product):
            raise ProductNotFound(product_id)
        logger.info("Product updated", product_id=product_id, price=product.price)
        return product

    def delete_product(self, product_id: str) -> None:
        if not self.store.delete_product(product_id):
            raise ProductNotFound(product_id)
        logger.info("Product deleted", product_id=product_id)

    def seed_defaults(self) -> int:
        """Insert DEFAULT_PRODUCTS when the catalog is empty. Returns how many were inserted."""
        existing = self.store.count_products()
        if existing:
            logger.info("Seed skipped", existing=existing)
            return 0
        for p in DEFAULT_PRODUCTS:
            self.store.insert_product(Product(**p))
        logger.info("Catalog seeded", count=len(DEFAULT_PRODUCTS))
        return len(DEFAULT_PRODUCTS)
