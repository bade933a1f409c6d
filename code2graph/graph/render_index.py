"""
Where each component is rendered from.
"""
from typing import Dict, Iterator, List, Tuple

from ..types import RenderLocation


class RenderLocationIndex:
    """Component name -> locations of capitalised JSX usages that render it."""

    def __init__(self):
        self._locations: Dict[str, List[RenderLocation]] = {}

    def add(self, component_name: str, location: RenderLocation):
        self._locations.setdefault(component_name, []).append(location)

    def get(self, component_name: str) -> List[RenderLocation]:
        return list(self._locations.get(component_name, []))

    def items(self) -> Iterator[Tuple[str, RenderLocation]]:
        """(component name, location) pairs in insertion order."""
        for name, locations in self._locations.items():
            for location in locations:
                yield name, location

    def __contains__(self, component_name: str) -> bool:
        return component_name in self._locations

    def __len__(self) -> int:
        return sum(len(locations) for locations in self._locations.values())
