"""
Loaded designs and the user's selection over them.

The selection is always a subset of the loaded designs and keeps the order
in which designs were picked; that order becomes the export file numbering.
"""

from __future__ import annotations

import threading

from modules.models import Design


class DesignSelection:
    def __init__(self, designs: list[Design] | None = None):
        self._lock = threading.Lock()
        self._loaded: dict[str, Design] = {}
        self._selected: list[str] = []
        if designs:
            self.load(designs)

    def load(self, designs: list[Design]) -> None:
        """Replace the loaded set; selected ids no longer loaded are dropped."""
        with self._lock:
            self._loaded = {d.id: d for d in designs}
            self._selected = [i for i in self._selected if i in self._loaded]

    def select(self, design_id: str) -> None:
        with self._lock:
            if design_id not in self._loaded:
                raise KeyError(design_id)
            if design_id not in self._selected:
                self._selected.append(design_id)

    def select_many(self, design_ids: list[str]) -> None:
        for design_id in design_ids:
            self.select(design_id)

    def deselect(self, design_id: str) -> None:
        with self._lock:
            if design_id in self._selected:
                self._selected.remove(design_id)

    def toggle(self, design_id: str) -> bool:
        """Flip selection; returns True if the design is now selected."""
        with self._lock:
            if design_id in self._selected:
                self._selected.remove(design_id)
                return False
            if design_id not in self._loaded:
                raise KeyError(design_id)
            self._selected.append(design_id)
            return True

    def remove(self, design_id: str) -> Design | None:
        """Drop a design from both the loaded set and the selection."""
        with self._lock:
            design = self._loaded.pop(design_id, None)
            if design_id in self._selected:
                self._selected.remove(design_id)
            return design

    def clear(self) -> None:
        with self._lock:
            self._selected = []

    @property
    def loaded(self) -> list[Design]:
        with self._lock:
            return list(self._loaded.values())

    @property
    def selected(self) -> list[Design]:
        with self._lock:
            return [self._loaded[i] for i in self._selected]

    def is_selected(self, design_id: str) -> bool:
        with self._lock:
            return design_id in self._selected

    def __len__(self) -> int:
        with self._lock:
            return len(self._selected)
