"""
Curated coordinate overrides for addresses the geocoding service cannot resolve.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple, Union


class OverrideTableError(Exception):
    """Raised when the override file is missing, unreadable or inconsistent."""
    pass


class OverrideTable:
    """
    Exact-match lookup from a composed address string to coordinates.

    Entries are loaded from a versioned JSON file::

        {"version": 1,
         "entries": [{"address": "840 Echo Park Ave, Los Angeles, CA",
                      "coordinates": [34.073635, -118.2603]}]}

    Addresses must be unique; a repeated address is rejected even when the
    coordinates agree, so each bad address string has exactly one owner.
    """

    def __init__(self, entries: Optional[Iterable[Tuple[str, Tuple[float, float]]]] = None, version: int = 1):
        self.version = version
        self._coordinates: Dict[str, Tuple[float, float]] = {}
        for address, coordinates in entries or []:
            self._add(address, coordinates)

    @classmethod
    def load(cls, file_path: Union[str, Path]) -> 'OverrideTable':
        """
        Load and validate an override file.

        Raises:
            OverrideTableError: If the file cannot be read or an entry is invalid
        """
        file_path = Path(file_path)
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise OverrideTableError(f"Failed to read override file {file_path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get('entries'), list):
            raise OverrideTableError(f"Override file {file_path} must be an object with an 'entries' list")

        version = data.get('version', 1)
        if not isinstance(version, int):
            raise OverrideTableError(f"Override file version must be an integer, got {version!r}")

        table = cls(version=version)
        for position, entry in enumerate(data['entries']):
            if not isinstance(entry, dict):
                raise OverrideTableError(f"Override entry {position} is not an object")
            table._add(entry.get('address'), entry.get('coordinates'), position)

        logging.getLogger(__name__).info(
            f"Loaded {len(table)} coordinate overrides (version {version}) from {file_path.name}"
        )
        return table

    def _add(self, address, coordinates, position: Optional[int] = None) -> None:
        where = f"entry {position}" if position is not None else f"address {address!r}"

        if not isinstance(address, str) or not address.strip():
            raise OverrideTableError(f"Override {where} has no address")
        if address in self._coordinates:
            raise OverrideTableError(f"Duplicate override address: {address!r}")

        if (not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2 or
                not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in coordinates)):
            raise OverrideTableError(f"Override {where} needs [latitude, longitude], got {coordinates!r}")

        latitude, longitude = float(coordinates[0]), float(coordinates[1])
        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            raise OverrideTableError(f"Override {where} has out-of-range coordinates {coordinates!r}")

        self._coordinates[address] = (latitude, longitude)

    def get(self, address: str) -> Optional[Tuple[float, float]]:
        return self._coordinates.get(address)

    def __contains__(self, address: str) -> bool:
        return address in self._coordinates

    def __len__(self) -> int:
        return len(self._coordinates)
