"""
Row selection for bulk actions.
"""

from collections.abc import Iterable


class SelectionTracker:
    """
    Set of checked record ids.

    Independent of QueryState. The owner clears it whenever the visible
    rows change (page, filter or sort), so a bulk action never targets rows
    the user can no longer see.
    """

    def __init__(self) -> None:
        self._ids: set[int] = set()

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._ids

    @property
    def ids(self) -> tuple[int, ...]:
        return tuple(sorted(self._ids))

    def is_selected(self, record_id: int) -> bool:
        return record_id in self._ids

    def select(self, record_id: int) -> None:
        self._ids.add(record_id)

    def deselect(self, record_id: int) -> None:
        self._ids.discard(record_id)

    def toggle(self, record_id: int) -> bool:
        """Flip one row; returns whether it is now selected."""
        if record_id in self._ids:
            self._ids.remove(record_id)
            return False
        self._ids.add(record_id)
        return True

    def select_page(self, record_ids: Iterable[int]) -> None:
        self._ids.update(record_ids)

    def deselect_page(self, record_ids: Iterable[int]) -> None:
        self._ids.difference_update(record_ids)

    def all_selected(self, record_ids: Iterable[int]) -> bool:
        """Header checkbox state: true when every visible row is checked."""
        visible = set(record_ids)
        return bool(visible) and visible <= self._ids

    def clear(self) -> None:
        self._ids.clear()
