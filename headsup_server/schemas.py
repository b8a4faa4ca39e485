from __future__ import annotations
from pydantic import BaseModel, Field
from typing import List


# Stored documents. Field names match the documents as persisted.

class MasterDeck(BaseModel):
    allWords: List[str] = []


class UserDeck(BaseModel):
    allWords: List[str] = []
    seenWords: List[str] = []

    def available(self) -> List[str]:
        # allWords order is preserved
        seen = set(self.seenWords)
        return [w for w in self.allWords if w not in seen]


# Word supply wire format

class WordRequest(BaseModel):
    category: str
    difficulty: str
    count: int
    existingWords: List[str] = []


class WordResponse(BaseModel):
    words: List[str]


# Client-facing payloads

class DeckResponse(BaseModel):
    deckId: str
    words: List[str]


class SeenWord(BaseModel):
    word: str = Field(..., min_length=1)


class DeckQuery(BaseModel):
    category: str
    difficulty: str


class SeenEvent(DeckQuery):
    word: str = Field(..., min_length=1)


class RoundReport(BaseModel):
    category: str
    difficulty: str
    correctWords: List[str] = []
    skippedWords: List[str] = []


class RoundResult(BaseModel):
    score: int
    correctWords: List[str]
    skippedWords: List[str]


class Catalog(BaseModel):
    categories: List[str]
    difficulties: List[str]
    durations: List[int]
