"""Selection set for bulk actions."""
from typing import Dict, Iterator, List


class SelectionSet:
    """
    Unique file ids chosen for a bulk action.

    Iterates in insertion order so bulk operations run deterministically.
    Only the workspace store decides when to clear it.
    """

    def __init__(self):
        self._ids: Dict[str, None] = {}

    def toggle(self, file_id: str) -> bool:
        """Flip membership; returns True if the id is now selected."""
        if file_id in self._ids:
            del self._ids[file_id]
            return False
        self._ids[file_id] = None
        return True

    def clear(self) -> None:
        self._ids.clear()

    def ids(self) -> List[str]:
        return list(self._ids)

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def __bool__(self) -> bool:
        return bool(self._ids)
