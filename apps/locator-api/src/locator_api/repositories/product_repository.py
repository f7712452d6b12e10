from __future__ import annotations

from pharmacy_engine.models import ProductRecord

SEED_PRODUCTS: tuple[ProductRecord, ...] = (
    ProductRecord(
        id="prd-001",
        name="Tylenol Extra Strength",
        generic_name="Acetaminophen",
        category="analgesic",
        brand_names=("Tylenol", "Panadol"),
        manufacturer="Johnson & Johnson",
        active_ingredient="acetaminophen",
    ),
    ProductRecord(
        id="prd-002",
        name="Advil",
        generic_name="Ibuprofen",
        category="nsaid",
        brand_names=("Advil", "Motrin"),
        manufacturer="Haleon",
        active_ingredient="ibuprofen",
    ),
    ProductRecord(
        id="prd-003",
        name="Claritin",
        generic_name="Loratadine",
        category="antihistamine",
        brand_names=("Claritin", "Alavert"),
        manufacturer="Bayer",
        active_ingredient="loratadine",
    ),
    ProductRecord(
        id="prd-004",
        name="Amoxicillin 500mg",
        generic_name="Amoxicillin",
        category="antibiotic",
        requires_prescription=True,
        brand_names=("Amoxil",),
        manufacturer="Teva",
        active_ingredient="amoxicillin",
    ),
    ProductRecord(
        id="prd-005",
        name="Metformin 500mg",
        generic_name="Metformin",
        category="antidiabetic",
        requires_prescription=True,
        brand_names=("Glucophage",),
        active_ingredient="metformin hydrochloride",
    ),
    ProductRecord(
        id="prd-006",
        name="Lipitor",
        generic_name="Atorvastatin",
        category="cardiovascular",
        requires_prescription=True,
        brand_names=("Lipitor",),
        manufacturer="Pfizer",
        active_ingredient="atorvastatin calcium",
    ),
    ProductRecord(
        id="prd-007",
        name="Gleevec",
        generic_name="Imatinib",
        category="oncology",
        requires_prescription=True,
        brand_names=("Gleevec", "Glivec"),
        manufacturer="Novartis",
        active_ingredient="imatinib mesylate",
    ),
)


class ProductRepository:
    """In-memory product catalog; every lookup is case-insensitive."""

    def __init__(self, seed: tuple[ProductRecord, ...] | list[ProductRecord] = SEED_PRODUCTS) -> None:
        self._items = list(seed)

    async def find_by_exact_name(self, name: str) -> list[ProductRecord]:
        needle = name.strip().lower()
        return [item for item in self._items if item.name.lower() == needle]

    async def search_all_fields(self, term: str) -> list[ProductRecord]:
        needle = term.strip().lower()
        if not needle:
            return []
        return [item for item in self._items if any(needle in field for field in _searchable_fields(item))]

    async def find_by_generic_name(self, term: str) -> list[ProductRecord]:
        needle = term.strip().lower()
        return [item for item in self._items if item.generic_name and needle in item.generic_name.lower()]

    async def find_by_brand_alias(self, term: str) -> list[ProductRecord]:
        needle = term.strip().lower()
        return [item for item in self._items if any(needle in brand.lower() for brand in item.brand_names)]


def _searchable_fields(item: ProductRecord) -> list[str]:
    values = [item.name, item.generic_name, item.manufacturer, item.active_ingredient, *item.brand_names]
    return [value.lower() for value in values if value]
