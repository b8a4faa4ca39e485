from __future__ import annotations


class HeadsUpError(Exception):
    """Base class for word-deck errors."""


class DeckUnavailable(HeadsUpError):
    """No playable words could be produced for a deck, even after seed and refresh."""

    def __init__(self, deck_id: str, message: str = "Deck is empty and word refresh failed."):
        super().__init__(message)
        self.deck_id = deck_id


class SupplyExhausted(HeadsUpError):
    """The word supply produced no new words and the user deck has nothing to fall back on."""


class WordSupplyError(HeadsUpError):
    """A single generation batch failed (transport, status or malformed body)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StoreError(HeadsUpError):
    pass


class DocumentNotFound(StoreError):
    def __init__(self, key: str):
        super().__init__(f"No document at {key}")
        self.key = key


class TransactionConflict(StoreError):
    def __init__(self, keys, attempts: int):
        super().__init__(f"Transaction over {list(keys)} aborted after {attempts} attempts")
        self.keys = list(keys)
        self.attempts = attempts
