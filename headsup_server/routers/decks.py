from typing import Tuple

from fastapi import APIRouter, HTTPException, Request

from ..game_logic import round_result
from ..managers.deck import deck_id
from ..schemas import Catalog, DeckResponse, RoundReport, RoundResult, SeenWord

router = APIRouter()


def resolve_deck(request: Request, category: str, difficulty: str) -> Tuple[str, str]:
    catalog = request.app.state.catalog
    cat = catalog.category(category)
    diff = catalog.difficulty(difficulty)
    if cat is None or diff is None:
        raise HTTPException(status_code=400, detail=f"Unknown deck: {category}/{difficulty}")
    return cat, diff


@router.get('/catalog', response_model=Catalog)
async def get_catalog(request: Request):
    return request.app.state.catalog.to_schema()


@router.get('/decks/{user_id}/{category}/{difficulty}', response_model=DeckResponse)
async def get_deck(request: Request, user_id: str, category: str, difficulty: str):
    cat, diff = resolve_deck(request, category, difficulty)
    # DeckUnavailable is mapped to 503 by the app-level handler
    words = await request.app.state.decks.get_deck(user_id, cat, diff)
    return DeckResponse(deckId=deck_id(cat, diff), words=words)


@router.post('/decks/{user_id}/{category}/{difficulty}/seen')
async def mark_seen(request: Request, user_id: str, category: str, difficulty: str, body: SeenWord):
    cat, diff = resolve_deck(request, category, difficulty)
    await request.app.state.decks.mark_seen(user_id, cat, diff, body.word)
    return {'ok': True}


@router.post('/rounds/{user_id}', response_model=RoundResult)
async def report_round(request: Request, user_id: str, report: RoundReport):
    cat, diff = resolve_deck(request, report.category, report.difficulty)
    await request.app.state.decks.mark_many_seen(user_id, cat, diff, report.correctWords + report.skippedWords)
    return round_result(report.correctWords, report.skippedWords)


@router.get('/health')
async def health(request: Request):
    return {'ok': True, 'pendingRefreshes': request.app.state.decks.pending_refreshes}
