"""
Persistent geocode cache.
Maps address keys to coordinates, or to an explicit "no result" marker.
"""
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..models.survey_data import GeocodeResult


CacheValue = Optional[List[float]]


class GeocodeCache:
    """
    In-memory geocode cache backed by a JSON file.

    A key mapped to ``null`` is a negative entry: the address was tried and
    could not be resolved. A key that is absent has never been tried. The file is
    read once with ``load()`` and rewritten wholesale with ``save()``.
    """

    def __init__(self, file_path: Optional[Union[str, Path]] = None):
        """
        Initialize an empty cache.

        Args:
            file_path: JSON file backing the cache; None keeps it in memory only
        """
        self.file_path = Path(file_path) if file_path else None
        self.logger = logging.getLogger(__name__)
        self._entries: Dict[str, CacheValue] = {}

    def load(self) -> int:
        """
        Read the cache file, replacing the in-memory entries.

        A missing, unreadable or corrupt file leaves the cache empty. Malformed
        individual entries are dropped.

        Returns:
            int: Number of entries loaded
        """
        self._entries = {}
        if self.file_path is None or not self.file_path.exists():
            return 0

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Error loading cache, starting with empty cache: {e}")
            return 0

        if not isinstance(data, dict):
            self.logger.warning(f"Cache file {self.file_path} is not a JSON object, starting with empty cache")
            return 0

        dropped = 0
        for key, value in data.items():
            if value is None:
                self._entries[key] = None
            elif self._is_coordinate_pair(value):
                self._entries[key] = [float(value[0]), float(value[1])]
            else:
                dropped += 1

        if dropped:
            self.logger.warning(f"Dropped {dropped} malformed cache entries from {self.file_path}")

        self.logger.info(f"Loaded {len(self._entries)} cached entries")
        return len(self._entries)

    def save(self) -> bool:
        """
        Write every entry back to the cache file.

        Returns:
            bool: True if the file was written; failures are logged, not raised
        """
        if self.file_path is None:
            return False

        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.file_path, 'w', encoding='utf-8') as f:
                json.dump(self._entries, f, indent=2)
        except OSError as e:
            self.logger.error(f"Error saving cache: {e}")
            return False

        self.logger.info(f"Saved {len(self._entries)} cache entries to {self.file_path}")
        return True

    def lookup(self, key: Optional[str]) -> GeocodeResult:
        """Return FOUND, NOT_FOUND for a negative entry, or UNCACHED for an absent key."""
        if key is None or key not in self._entries:
            return GeocodeResult.uncached()

        value = self._entries[key]
        if value is None:
            return GeocodeResult.not_found(source="cache")
        return GeocodeResult.found(value[0], value[1], source="cache")

    def store(self, key: str, coordinates: Tuple[float, float]) -> None:
        self._entries[key] = [float(coordinates[0]), float(coordinates[1])]

    def store_failure(self, key: str) -> None:
        """Record that this key could not be geocoded."""
        self._entries[key] = None

    def to_dict(self) -> Dict[str, CacheValue]:
        return {key: (list(value) if value is not None else None) for key, value in self._entries.items()}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def _is_coordinate_pair(value) -> bool:
        return (isinstance(value, (list, tuple)) and len(value) == 2 and
                all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value))
