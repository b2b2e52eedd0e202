"""
Built-in catalog tools: product search and store locator.

Both match against a lowercased query and return {"source", <items>} on a
hit, or a plain-text "no match" sentence otherwise.
"""

from dataclasses import asdict, dataclass
from typing import Union


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: float
    stock: str
    description: str


@dataclass(frozen=True)
class StoreLocation:
    id: str
    name: str
    address: str
    phone: str
    hours: str


_BRANCH_HOURS = "9:15am - 6:00pm (Mon-Sat), 9:15am - 4:30pm (Sun)"

DEFAULT_PRODUCTS = (
    Product("p1", "Premium Brake Pads", 59.99, "In Stock", "High performance ceramic brake pads."),
    Product("p2", "Standard Oil Filter", 12.99, "In Stock", "Fits most sedans."),
    Product("p3", "Synthetic Motor Oil 5W-30", 29.99, "Low Stock", "Full synthetic for better protection."),
    Product("p4", "Wiper Blades (Pair)", 24.99, "Out of Stock", "All-season wiper blades."),
)

DEFAULT_LOCATIONS = (
    StoreLocation(
        "l1", "Kota Damansara",
        "No.2-G (Ground Floor) Jalan PJU 5/20D, The Strand Kota Damansara, 47810 Petaling Jaya, Selangor",
        "010-203 0291", _BRANCH_HOURS,
    ),
    StoreLocation(
        "l2", "Ampang Jaya",
        "No. 45, Jln Ulu Klang, Ukay Heights, 68000 Ampang, Selangor",
        "011-12784255", _BRANCH_HOURS,
    ),
    StoreLocation(
        "l3", "Subang Jaya",
        "Lot PT 2092, Jalan Tujuan, Subang Jaya, 47500, Selangor",
        "03-56372188", _BRANCH_HOURS,
    ),
    StoreLocation(
        "l4", "Sentul",
        "No. 2, Lorong Sentul Kecil Off Jalan Sentul, 51100 Kuala Lumpur",
        "03-4042 9797", _BRANCH_HOURS,
    ),
    StoreLocation(
        "l5", "TTDI",
        "Lot 41313, Pinggir Zaaba, Taman Tun Dr. Ismail, 60000 Kuala Lumpur",
        "03-7727 7377", _BRANCH_HOURS,
    ),
    StoreLocation(
        "l6", "Seremban 2",
        "No. 124, Jalan S2 B20, Pusat Dagangan Seremban 2, 70300 Seremban, Negeri Sembilan",
        "06-601 3877", _BRANCH_HOURS,
    ),
)

# Category keyword in the query -> substring the product name must contain
_PRODUCT_KEYWORDS = ("brake", "oil")

# Region keyword in the query -> substring the address must contain
_REGION_KEYWORDS = {
    "selangor": "selangor",
    "kuala lumpur": "kuala lumpur",
    "kl": "kuala lumpur",
}

_GENERIC_LOCATION_WORDS = ("store", "location", "branch", "near")


class ProductCatalogTool:
    """Search products by full name, description or category keyword."""

    def __init__(self, products=DEFAULT_PRODUCTS):
        self._products = tuple(products)

    def _matches(self, query: str, product: Product) -> bool:
        name = product.name.lower()
        if name in query or product.description.lower() in query:
            return True
        return any(keyword in query and keyword in name for keyword in _PRODUCT_KEYWORDS)

    async def search(self, query: str) -> Union[dict, str]:
        query = query.lower()
        matches = [asdict(p) for p in self._products if self._matches(query, p)]
        if not matches:
            return "Product API: No matching products found for the query."
        return {"source": "mock_product_api", "products": matches}


class StoreLocatorTool:
    """Find branches by name, address or region; generic requests list every branch."""

    def __init__(self, locations=DEFAULT_LOCATIONS):
        self._locations = tuple(locations)

    def _matches(self, query: str, location: StoreLocation) -> bool:
        address = location.address.lower()
        if location.name.lower() in query or address in query:
            return True
        return any(
            keyword in query and region in address
            for keyword, region in _REGION_KEYWORDS.items()
        )

    async def search(self, query: str) -> Union[dict, str]:
        query = query.lower()
        matches = [asdict(loc) for loc in self._locations if self._matches(query, loc)]
        if matches:
            return {"source": "mock_location_api", "locations": matches}

        if any(word in query for word in _GENERIC_LOCATION_WORDS):
            return {"source": "mock_location_api", "locations": [asdict(loc) for loc in self._locations]}

        return "Location API: No matching stores found for the query."
