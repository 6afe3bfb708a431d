"""
Catalog snapshot models
"""
import math
from typing import Optional, List, Dict, Any, FrozenSet
from dataclasses import dataclass, field


@dataclass(frozen=True)
class CatalogItem:
    """Orderable item as seen by the scoring pipeline"""
    id: str
    category: str
    price: float
    name: str = ""
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    tags: FrozenSet[str] = field(default_factory=frozenset)
    flavor_profile: Optional[tuple] = None
    preparation_time: Optional[float] = None
    popularity: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        if self.price is None or not math.isfinite(self.price) or self.price < 0:
            raise ValueError(f"Item '{self.id}' has invalid price {self.price!r}; price must be a finite non-negative number")
        # Normalise collection fields so items stay hashable and comparable
        object.__setattr__(self, "tags", frozenset(str(tag).strip().lower() for tag in (self.tags or ())))
        if self.flavor_profile is not None:
            object.__setattr__(self, "flavor_profile", tuple(float(v) for v in self.flavor_profile))

    def has_any_tag(self, *tags: str) -> bool:
        """Check if the item carries at least one of the given tags"""
        return any(tag in self.tags for tag in tags)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogItem":
        """Build an item from a plain mapping (API payloads, ORM rows)"""
        return cls(
            id=str(data["id"]),
            category=data.get("category") or "",
            price=data.get("price"),
            name=data.get("name") or "",
            rating=data.get("rating"),
            rating_count=data.get("rating_count"),
            tags=frozenset(data.get("tags") or ()),
            flavor_profile=data.get("flavor_profile"),
            preparation_time=data.get("preparation_time"),
            popularity=data.get("popularity"),
            metadata=dict(data.get("metadata") or {})
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "rating": self.rating,
            "rating_count": self.rating_count,
            "tags": sorted(self.tags),
            "flavor_profile": list(self.flavor_profile) if self.flavor_profile is not None else None,
            "preparation_time": self.preparation_time,
            "popularity": self.popularity,
            "metadata": self.metadata
        }


def index_by_id(items: List[CatalogItem]) -> Dict[str, CatalogItem]:
    """Map item ids to items (first occurrence wins)"""
    index: Dict[str, CatalogItem] = {}
    for item in items:
        index.setdefault(item.id, item)
    return index
