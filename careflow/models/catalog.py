"""Immutable catalogs and the substring search used by the portal pages."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence


@dataclass(frozen=True)
class CatalogItem:
    """A purchasable item such as a medicine."""

    id: str
    name: str
    description: str
    unit_price: Decimal
    category: str
    image: str = "/placeholder.svg?height=200&width=200"

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("CatalogItem id cannot be blank.")
        price = Decimal(str(self.unit_price))
        if price < 0:
            raise ValueError("CatalogItem unit_price must be non-negative.")
        object.__setattr__(self, "unit_price", price)


@dataclass(frozen=True)
class Doctor:
    """An entry of the doctor directory used by the appointment flow."""

    id: int
    name: str
    speciality: str
    fee: Decimal
    availability: tuple[str, ...]
    rating: float


def _normalize_query(query: str | None) -> str:
    return (query or "").strip().lower()


def _matches(needle: str, fields: Iterable[str]) -> bool:
    return any(needle in (value or "").lower() for value in fields)


def search(items: Sequence[CatalogItem], query: str | None) -> list[CatalogItem]:
    """Return items whose name, description or category contains ``query``.

    Matching is a case-insensitive substring test. A blank query returns the
    full list in its original order.
    """

    needle = _normalize_query(query)
    if not needle:
        return list(items)
    return [
        item
        for item in items
        if _matches(needle, (item.name, item.description, item.category))
    ]


def is_not_found(query: str | None, results: Sequence[object]) -> bool:
    """Return whether a non-blank query produced no results."""

    return bool(_normalize_query(query)) and len(results) == 0


def search_doctors(doctors: Sequence[Doctor], query: str | None) -> list[Doctor]:
    """Filter the doctor directory by name or speciality."""

    needle = _normalize_query(query)
    if not needle:
        return list(doctors)
    return [doctor for doctor in doctors if _matches(needle, (doctor.name, doctor.speciality))]


class Catalog:
    """Ordered, read-only collection of catalog items keyed by identifier."""

    def __init__(self, items: Iterable[CatalogItem]) -> None:
        self._items: tuple[CatalogItem, ...] = tuple(items)
        self._index: dict[str, CatalogItem] = {}
        for item in self._items:
            if item.id in self._index:
                raise ValueError(f"Duplicate catalog identifier {item.id!r}.")
            self._index[item.id] = item

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._index

    @property
    def items(self) -> tuple[CatalogItem, ...]:
        return self._items

    def get(self, item_id: str) -> CatalogItem | None:
        return self._index.get(str(item_id))

    def search(self, query: str | None) -> list[CatalogItem]:
        return search(self._items, query)


PHARMACY_CATALOG = Catalog(
    [
        CatalogItem(
            id="1",
            name="Paracetamol",
            description="Pain relief and fever reduction",
            unit_price=Decimal("5.99"),
            category="Pain Relief",
        ),
        CatalogItem(
            id="2",
            name="Amoxicillin",
            description="Antibiotic for bacterial infections",
            unit_price=Decimal("12.99"),
            category="Antibiotics",
        ),
        CatalogItem(
            id="3",
            name="Ibuprofen",
            description="Anti-inflammatory pain reliever",
            unit_price=Decimal("7.99"),
            category="Pain Relief",
        ),
        CatalogItem(
            id="4",
            name="Cetirizine",
            description="Antihistamine for allergy symptoms",
            unit_price=Decimal("8.49"),
            category="Allergy",
        ),
        CatalogItem(
            id="5",
            name="Omeprazole",
            description="Reduces stomach acid and heartburn",
            unit_price=Decimal("10.99"),
            category="Digestive Health",
        ),
        CatalogItem(
            id="6",
            name="Vitamin D3",
            description="Supports bone and immune health",
            unit_price=Decimal("9.99"),
            category="Vitamins",
        ),
        CatalogItem(
            id="7",
            name="Loratadine",
            description="Non-drowsy allergy relief",
            unit_price=Decimal("6.99"),
            category="Allergy",
        ),
        CatalogItem(
            id="8",
            name="Metformin",
            description="Helps control blood sugar levels",
            unit_price=Decimal("14.49"),
            category="Diabetes",
        ),
    ]
)

LAB_TESTS: dict[str, tuple[str, ...]] = {
    "Blood Tests": (
        "Complete Blood Count (CBC)",
        "Lipid Profile",
        "Blood Sugar (Glucose)",
        "Thyroid Function Test",
        "Liver Function Test",
    ),
    "Urine Tests": ("Routine Urine Analysis", "Microalbumin Test", "Urine Culture"),
    "Cardiac Tests": ("Electrocardiogram (ECG)", "Cardiac Markers", "Cholesterol Test"),
    "Imaging Tests": ("X-Ray", "Ultrasound", "MRI Scan", "CT Scan"),
}

LAB_TEST_NAMES: tuple[str, ...] = tuple(
    name for tests in LAB_TESTS.values() for name in tests
)

_WEEKDAYS_MWF = ("Mon", "Wed", "Fri")
_WEEKDAYS_TTS = ("Tue", "Thu", "Sat")

DOCTORS: tuple[Doctor, ...] = (
    Doctor(1, "Dr. John Doe", "Cardiologist", Decimal("100"), _WEEKDAYS_MWF, 4.5),
    Doctor(2, "Dr. Jane Smith", "Dermatologist", Decimal("90"), _WEEKDAYS_TTS, 4.8),
    Doctor(3, "Dr. Emily Brown", "Pediatrician", Decimal("80"), ("Mon", "Tue", "Thu"), 4.7),
    Doctor(4, "Dr. Michael Johnson", "Orthopedic Surgeon", Decimal("120"), ("Wed", "Fri", "Sat"), 4.9),
    Doctor(5, "Dr. Sarah Lee", "Neurologist", Decimal("110"), ("Mon", "Thu", "Fri"), 4.6),
    Doctor(6, "Dr. David Wilson", "Ophthalmologist", Decimal("95"), ("Tue", "Wed", "Sat"), 4.7),
    Doctor(7, "Dr. Lisa Chen", "Gynecologist", Decimal("105"), _WEEKDAYS_MWF, 4.8),
    Doctor(8, "Dr. Robert Taylor", "Psychiatrist", Decimal("130"), _WEEKDAYS_TTS, 4.5),
    Doctor(9, "Dr. Amanda White", "Endocrinologist", Decimal("100"), _WEEKDAYS_MWF, 4.6),
    Doctor(10, "Dr. James Anderson", "Urologist", Decimal("110"), _WEEKDAYS_TTS, 4.7),
    Doctor(11, "Dr. Patricia Martinez", "Rheumatologist", Decimal("95"), _WEEKDAYS_MWF, 4.8),
    Doctor(12, "Dr. Thomas Harris", "Gastroenterologist", Decimal("105"), _WEEKDAYS_TTS, 4.6),
    Doctor(13, "Dr. Jennifer Clark", "Allergist", Decimal("90"), _WEEKDAYS_MWF, 4.7),
    Doctor(14, "Dr. Christopher Lee", "Pulmonologist", Decimal("115"), _WEEKDAYS_TTS, 4.9),
    Doctor(15, "Dr. Elizabeth Scott", "Oncologist", Decimal("125"), _WEEKDAYS_MWF, 4.8),
    Doctor(16, "Dr. Daniel Brown", "Nephrologist", Decimal("100"), _WEEKDAYS_TTS, 4.6),
    Doctor(17, "Dr. Michelle Davis", "Hematologist", Decimal("110"), _WEEKDAYS_MWF, 4.7),
    Doctor(18, "Dr. Kevin Wilson", "Plastic Surgeon", Decimal("150"), _WEEKDAYS_TTS, 4.9),
    Doctor(19, "Dr. Laura Thompson", "Geriatrician", Decimal("95"), _WEEKDAYS_MWF, 4.5),
    Doctor(20, "Dr. Richard Moore", "Otolaryngologist", Decimal("105"), _WEEKDAYS_TTS, 4.7),
    Doctor(21, "Dr. Karen Rodriguez", "Immunologist", Decimal("100"), _WEEKDAYS_MWF, 4.6),
    Doctor(22, "Dr. William Taylor", "Vascular Surgeon", Decimal("130"), _WEEKDAYS_TTS, 4.8),
    Doctor(23, "Dr. Susan Anderson", "Neonatologist", Decimal("120"), _WEEKDAYS_MWF, 4.9),
    Doctor(24, "Dr. Joseph Martinez", "Pain Management", Decimal("110"), _WEEKDAYS_TTS, 4.7),
    Doctor(25, "Dr. Nancy White", "Sports Medicine", Decimal("100"), _WEEKDAYS_MWF, 4.8),
    Doctor(26, "Dr. George Thompson", "Infectious Disease", Decimal("105"), _WEEKDAYS_TTS, 4.6),
    Doctor(27, "Dr. Carol Davis", "Anesthesiologist", Decimal("140"), _WEEKDAYS_MWF, 4.9),
    Doctor(28, "Dr. Edward Johnson", "Radiologist", Decimal("120"), _WEEKDAYS_TTS, 4.7),
    Doctor(29, "Dr. Margaret Brown", "Geneticist", Decimal("110"), _WEEKDAYS_MWF, 4.8),
    Doctor(30, "Dr. Charles Wilson", "Podiatrist", Decimal("95"), _WEEKDAYS_TTS, 4.6),
)


def get_doctor(doctor_id: object) -> Doctor | None:
    """Return the directory entry for ``doctor_id`` if it exists."""

    try:
        wanted = int(doctor_id)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    for doctor in DOCTORS:
        if doctor.id == wanted:
            return doctor
    return None
