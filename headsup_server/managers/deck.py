from __future__ import annotations
import asyncio
import logging
from typing import Iterable, List, Optional, Set

from ..errors import DeckUnavailable, StoreError, SupplyExhausted
from ..schemas import MasterDeck, UserDeck
from ..store import DeckKeys, DocumentStore, SetUnion
from ..word_supply import WordSupplyClient

logger = logging.getLogger(__name__)

LOW_WATERMARK_DIVISOR = 10


def deck_id(category: str, difficulty: str) -> str:
    return f"{category}_{difficulty}".lower()


class DeckCacheManager:
    """
    Serves unseen words per (user, category, difficulty).

    Each user has a private deck seeded from a shared master deck. When a user
    runs out of unseen words the deck is refilled from the word supply and the
    new words are merged into both decks in one transaction.
    """

    def __init__(
        self,
        store: DocumentStore,
        supply: WordSupplyClient,
        keys: Optional[DeckKeys] = None,
        low_watermark_divisor: int = LOW_WATERMARK_DIVISOR,
    ):
        self.store = store
        self.supply = supply
        self.keys = keys or DeckKeys()
        self.low_watermark_divisor = low_watermark_divisor
        self._refresh_tasks: Set[asyncio.Task] = set()

    @property
    def pending_refreshes(self) -> int:
        return len(self._refresh_tasks)

    async def get_deck(self, user_id: str, category: str, difficulty: str) -> List[str]:
        """
        Return the user's unseen words for this deck, seeding or refilling as needed.

        Raises:
            DeckUnavailable: if no playable words can be produced
        """
        did = deck_id(category, difficulty)
        logger.info(f"[Deck] Getting deck: {did} for user: {user_id}")

        try:
            doc = await self.store.read(self.keys.user(user_id, did))
            if doc is None:
                logger.info(f"[Deck] No private deck for {user_id}. Seeding {did}...")
                deck = await self.seed(did, user_id, category, difficulty)
            else:
                deck = UserDeck.model_validate(doc)
        except (SupplyExhausted, StoreError) as exc:
            raise DeckUnavailable(did, "Failed to seed new user deck.") from exc

        available = deck.available()
        threshold = len(deck.allWords) // self.low_watermark_divisor
        logger.info(
            f"[Deck] Deck status: {len(deck.allWords)} total, {len(deck.seenWords)} seen, "
            f"{len(available)} available."
        )

        if not available:
            logger.info(f"[Deck] {did} empty for {user_id}. Refreshing...")
            try:
                deck = await self.refresh(did, user_id, category, difficulty)
            except (SupplyExhausted, StoreError) as exc:
                raise DeckUnavailable(did) from exc
            available = deck.available()
            if not available:
                raise DeckUnavailable(did)
        elif len(available) < threshold:
            logger.info(f"[Deck] Low words in {did} ({len(available)} < {threshold}). Triggering background refresh...")
            self.trigger_background_refresh(did, user_id, category, difficulty)

        return available

    async def mark_seen(self, user_id: str, category: str, difficulty: str, word: str) -> None:
        await self.mark_many_seen(user_id, category, difficulty, [word])

    async def mark_many_seen(self, user_id: str, category: str, difficulty: str, words: Iterable[str]) -> None:
        """Add words to the user's seen set. Failures are logged, never raised."""
        words = list(words)
        if not words:
            return
        did = deck_id(category, difficulty)
        try:
            await self.store.add_to_set(self.keys.user(user_id, did), 'seenWords', words)
        except StoreError as exc:
            logger.error(f"[Deck] Failed to update seenWords for {user_id}/{did}: {exc}")

    async def seed(self, did: str, user_id: str, category: str, difficulty: str) -> UserDeck:
        """Create the user's deck from the master deck, filling the master deck first if it is empty."""
        doc = await self.store.read(self.keys.master(did))
        master = MasterDeck.model_validate(doc) if doc else MasterDeck()

        if not master.allWords:
            logger.info(f"[Deck] Master deck {did} empty. Calling word supply...")
            # refresh commits the user deck together with the master deck
            return await self.refresh(did, user_id, category, difficulty)

        deck = UserDeck(allWords=list(master.allWords), seenWords=[])
        await self.store.write(self.keys.user(user_id, did), deck.model_dump())
        return deck

    async def refresh(self, did: str, user_id: str, category: str, difficulty: str) -> UserDeck:
        """
        Fetch new words and merge them into the master and user decks.

        The user deck gets the new words appended and its seen set cleared. If
        the supply yields nothing, an existing non-empty user deck is returned
        unchanged.

        Raises:
            SupplyExhausted: if no new words arrived and the user deck is empty
            StoreError: if reading or committing fails
        """
        master_key = self.keys.master(did)
        user_key = self.keys.user(user_id, did)
        logger.info(f"[Deck] Refilling {did} for {user_id}...")

        try:
            master_doc, user_doc = await asyncio.gather(self.store.read(master_key), self.store.read(user_key))
            master = MasterDeck.model_validate(master_doc) if master_doc else MasterDeck()
            user = UserDeck.model_validate(user_doc) if user_doc else UserDeck()

            exclusions = set(master.allWords) | set(user.allWords)
            new_words = await self.supply.fetch_new_words(category, difficulty, exclusions)

            if not new_words:
                if user.allWords:
                    logger.warning(f"[Deck] No new words for {did}; keeping {len(user.allWords)} existing words")
                    return user
                raise SupplyExhausted(f"Word supply returned no new words for {did}")

            logger.info(f"[Deck] Fetched {len(new_words)} new unique words for {did}.")

            def merge(snapshot):
                # Build on the committed user deck so a concurrent refresh is not lost
                current = UserDeck.model_validate(snapshot[user_key]) if snapshot[user_key] else user
                present = set(current.allWords)
                updated = UserDeck(
                    allWords=current.allWords + [w for w in new_words if w not in present],
                    seenWords=[],
                )
                writes = {
                    master_key: SetUnion('allWords', new_words),
                    user_key: updated.model_dump(),
                }
                return writes, updated

            return await self.store.transaction([master_key, user_key], merge)
        except (SupplyExhausted, StoreError):
            logger.exception(f"[Deck] Failed to refresh word cache for {did}")
            raise

    def trigger_background_refresh(self, did: str, user_id: str, category: str, difficulty: str) -> None:
        """Start a refresh without waiting for it. Its outcome is logged and discarded."""
        task = asyncio.create_task(
            self._background_refresh(did, user_id, category, difficulty),
            name=f"refresh:{user_id}:{did}",
        )
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def _background_refresh(self, did: str, user_id: str, category: str, difficulty: str) -> None:
        try:
            deck = await self.refresh(did, user_id, category, difficulty)
            logger.info(f"[Deck] Background refresh of {did} done: {len(deck.allWords)} words")
        except Exception:
            logger.exception(f"[Deck] Background refresh failed for {user_id}/{did}")

    async def drain(self) -> None:
        """Wait for outstanding background refreshes."""
        while self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._refresh_tasks):
            task.cancel()
        await asyncio.gather(*list(self._refresh_tasks), return_exceptions=True)
