"""
Client for the remote word generation service.

One POST per batch: {category, difficulty, count, existingWords} -> {words}.
"""

from __future__ import annotations
import logging
from typing import Iterable, List, Optional, Set

import httpx
from pydantic import ValidationError

from .schemas import WordRequest, WordResponse
from .errors import WordSupplyError

logger = logging.getLogger(__name__)

DEFAULT_BATCHES = 3
DEFAULT_BATCH_SIZE = 50


class WordSupplyClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        url: str,
        batches: int = DEFAULT_BATCHES,
        batch_size: int = DEFAULT_BATCH_SIZE,
        timeout: Optional[float] = None,
    ):
        self.http = http
        self.url = url
        self.batches = batches
        self.batch_size = batch_size
        self.timeout = timeout

    async def generate_batch(self, category: str, difficulty: str, count: int, exclusions: Iterable[str]) -> List[str]:
        """
        Ask the service for `count` candidate words, excluding `exclusions`.

        Raises:
            WordSupplyError: on transport failure, timeout, non-2xx status or malformed body
        """
        payload = WordRequest(category=category, difficulty=difficulty, count=count, existingWords=list(exclusions))
        kwargs = {'json': payload.model_dump()}
        if self.timeout is not None:
            kwargs['timeout'] = self.timeout
        try:
            r = await self.http.post(self.url, **kwargs)
        except httpx.TimeoutException as exc:
            raise WordSupplyError(f"Word supply timed out: {exc!r}") from exc
        except httpx.HTTPError as exc:
            raise WordSupplyError(f"Network error calling word supply: {exc!r}") from exc

        if not r.is_success:
            raise WordSupplyError(f"Server Error {r.status_code}: {r.text}", status_code=r.status_code)

        try:
            return WordResponse.model_validate(r.json()).words
        except (ValueError, ValidationError) as exc:
            raise WordSupplyError(f"Malformed word supply response: {exc}", status_code=r.status_code) from exc

    async def fetch_new_words(self, category: str, difficulty: str, exclusions: Iterable[str]) -> List[str]:
        """
        Run up to `batches` sequential batches and collect words not in `exclusions`.

        Words are stripped; blanks and anything already excluded (including words
        accepted by an earlier batch) are dropped. A failed batch is logged and
        the loop moves on. Returns accepted words in the order they were accepted.
        """
        excluded: Set[str] = set(exclusions)
        accepted: List[str] = []
        for i in range(self.batches):
            try:
                words = await self.generate_batch(category, difficulty, self.batch_size, excluded)
            except WordSupplyError as exc:
                logger.error(f"[Supply] Batch {i + 1} failed for {category}/{difficulty}: {exc}")
                continue
            except Exception:
                logger.exception(f"[Supply] Batch {i + 1} failed unexpectedly for {category}/{difficulty}")
                continue
            fresh = 0
            for word in words:
                trimmed = word.strip()
                if trimmed and trimmed not in excluded:
                    accepted.append(trimmed)
                    excluded.add(trimmed)
                    fresh += 1
            logger.debug(f"[Supply] Batch {i + 1}: {len(words)} returned, {fresh} new")
        return accepted
