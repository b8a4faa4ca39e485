from __future__ import annotations
from typing import Dict, Iterable, Optional

from .game_logic import CATEGORIES, DIFFICULTIES, ROUND_DURATIONS
from .schemas import Catalog


class CatalogService:
    """Known categories and difficulties, matched case-insensitively."""

    def __init__(self, categories: Optional[Iterable[str]] = None, difficulties: Optional[Iterable[str]] = None):
        # lowercase -> display name
        self._categories: Dict[str, str] = {c.lower(): c for c in (categories or CATEGORIES)}
        self._difficulties: Dict[str, str] = {d.lower(): d for d in (difficulties or DIFFICULTIES)}

    def category(self, name: str) -> Optional[str]:
        if not name:
            return None
        return self._categories.get(name.strip().lower())

    def difficulty(self, name: str) -> Optional[str]:
        if not name:
            return None
        return self._difficulties.get(name.strip().lower())

    def is_valid(self, category: str, difficulty: str) -> bool:
        return self.category(category) is not None and self.difficulty(difficulty) is not None

    def to_schema(self) -> Catalog:
        return Catalog(
            categories=list(self._categories.values()),
            difficulties=list(self._difficulties.values()),
            durations=list(ROUND_DURATIONS),
        )
