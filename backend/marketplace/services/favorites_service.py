"""
Favorites and comparison sets persisted to per-session local storage.

Both sets are keyed by listing id and never hold duplicates. The comparison
set has a hard cap: additions beyond it are rejected, nothing is evicted.
Every mutation rewrites the whole set to storage; unreadable stored content
loads as an empty set.
"""

from typing import Any, Dict, List, Optional, Tuple
import json
import logging

from ..models.schemas import Property
from ..models.state import ComparisonAddResult, StorageKey
from .local_storage import LocalStorage

logger = logging.getLogger(__name__)


def _key(listing_id: Any) -> str:
    return str(listing_id)


class ListingSet:
    """
    Deduplicated set of listings, keyed by id, mirrored to a storage key.

    Keeps insertion order for display; membership checks go through an id
    index.
    """

    storage_key: str = ""

    def __init__(self, storage: LocalStorage, storage_key: Optional[str] = None):
        self._storage = storage
        if storage_key:
            self.storage_key = storage_key
        self._items: Dict[str, Property] = {}
        self._load()

    def _load(self):
        raw = self._storage.get_item(self.storage_key)
        if raw is None:
            return
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("stored value is not a list")
            items = [Property.model_validate(entry) for entry in data]
        except ValueError as e:
            # pydantic's ValidationError is a ValueError too
            logger.warning(f"Resetting malformed '{self.storage_key}' storage: {e}")
            self._items = {}
            return

        for item in items:
            self._items.setdefault(_key(item.id), item)

    def _save(self):
        payload = [item.model_dump(mode="json") for item in self._items.values()]
        self._storage.set_item(self.storage_key, json.dumps(payload))

    @property
    def items(self) -> List[Property]:
        """Members in insertion order."""
        return list(self._items.values())

    def ids(self) -> List[str]:
        return list(self._items)

    def is_member(self, listing_id: Any) -> bool:
        """O(1) membership check by id."""
        return _key(listing_id) in self._items

    def get(self, listing_id: Any) -> Optional[Property]:
        return self._items.get(_key(listing_id))

    def remove(self, listing_id: Any) -> bool:
        """
        Remove a listing if present.

        Returns:
            True if removed, False if it was not a member
        """
        if self._items.pop(_key(listing_id), None) is None:
            return False
        self._save()
        return True

    def clear(self):
        """Empty the set unconditionally."""
        self._items = {}
        self._save()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, listing_id: Any) -> bool:
        return self.is_member(listing_id)

    def __iter__(self):
        return iter(self.items)


class FavoriteSet(ListingSet):
    """Listings the user bookmarked."""

    storage_key = StorageKey.FAVORITES.value

    def toggle(self, listing: Property) -> Tuple[List[Property], bool]:
        """
        Add the listing if absent, remove it if present.

        Args:
            listing: Property to toggle

        Returns:
            The updated items and whether the listing is now a favorite
        """
        key = _key(listing.id)
        if key in self._items:
            del self._items[key]
            is_member = False
        else:
            self._items[key] = listing
            is_member = True
        self._save()
        return self.items, is_member


class ComparisonSet(ListingSet):
    """Bounded working set of listings compared side by side."""

    storage_key = StorageKey.COMPARISON.value

    def __init__(self, storage: LocalStorage, max_items: int = 4, storage_key: Optional[str] = None):
        self.max_items = max_items
        super().__init__(storage, storage_key)

    def _load(self):
        super()._load()
        if len(self._items) > self.max_items:
            logger.warning(
                f"Stored comparison holds {len(self._items)} items, keeping the first {self.max_items}"
            )
            self._items = dict(list(self._items.items())[: self.max_items])
            self._save()

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self.max_items

    def add(self, listing: Property) -> ComparisonAddResult:
        """
        Add a listing unless it is already present or the set is full.

        Args:
            listing: Property to compare

        Returns:
            ComparisonAddResult describing what happened
        """
        key = _key(listing.id)
        if key in self._items:
            return ComparisonAddResult.ALREADY_PRESENT
        if self.is_full:
            return ComparisonAddResult.LIMIT_REACHED

        self._items[key] = listing
        self._save()
        return ComparisonAddResult.ADDED
