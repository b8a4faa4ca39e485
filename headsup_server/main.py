from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import socketio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .catalog import CatalogService
from .config import Config, configure_logging
from .errors import DeckUnavailable
from .game_logic import round_result
from .managers.deck import DeckCacheManager, deck_id
from .routers.decks import router as decks_router
from .schemas import DeckQuery, RoundReport, SeenEvent
from .store import DeckKeys, DocumentStore, InMemoryDocumentStore
from .word_supply import WordSupplyClient

logger = logging.getLogger(__name__)


def create_app(config_class=Config, store: Optional[DocumentStore] = None,
               http: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """Build the REST app. Store, HTTP client and deck manager live for the app's lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_http = http is None
        client = http or httpx.AsyncClient(timeout=config_class.WORD_SUPPLY_TIMEOUT_SEC)
        doc_store = store or InMemoryDocumentStore(max_attempts=config_class.STORE_MAX_ATTEMPTS)
        supply = WordSupplyClient(
            client,
            config_class.WORD_SUPPLY_URL,
            batches=config_class.WORD_SUPPLY_BATCHES,
            batch_size=config_class.WORD_SUPPLY_BATCH_SIZE,
            timeout=config_class.WORD_SUPPLY_TIMEOUT_SEC,
        )
        app.state.decks = DeckCacheManager(
            doc_store,
            supply,
            keys=DeckKeys(config_class.STORE_NAMESPACE),
            low_watermark_divisor=config_class.LOW_WATERMARK_DIVISOR,
        )
        logger.info(f"Deck cache ready (word supply: {config_class.WORD_SUPPLY_URL})")
        try:
            yield
        finally:
            await app.state.decks.close()
            await doc_store.close()
            if owns_http:
                await client.aclose()

    app = FastAPI(title="Heads Up Server", version="0.1.0", lifespan=lifespan)
    app.state.catalog = CatalogService()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config_class.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    @app.exception_handler(DeckUnavailable)
    async def deck_unavailable_handler(request: Request, exc: DeckUnavailable):
        logger.error(f"Deck {exc.deck_id} unavailable: {exc} (cause: {exc.__cause__!r})")
        return JSONResponse(status_code=503, content={'ok': False, 'deckId': exc.deck_id, 'error': str(exc)})

    app.include_router(decks_router)
    return app


def register_socketio_handlers(sio: socketio.AsyncServer, app: FastAPI) -> None:
    catalog: CatalogService = app.state.catalog

    async def _user_id(sid) -> Optional[str]:
        sess = await sio.get_session(sid)
        return sess.get('user_id') if sess else None

    def _resolve(category: str, difficulty: str):
        cat = catalog.category(category)
        diff = catalog.difficulty(difficulty)
        if cat is None or diff is None:
            return None
        return cat, diff

    @sio.event
    async def connect(sid, environ, auth):
        # Client sends its user id as the auth token
        user_id = None
        if isinstance(auth, dict):
            token = auth.get('token')
            if isinstance(token, str) and token.strip():
                user_id = token.strip()
        await sio.save_session(sid, {'user_id': user_id or f"guest-{sid[:8]}"})

    @sio.on('deck:get')
    async def deck_get(sid, payload):
        try:
            query = DeckQuery.model_validate(payload)
        except ValidationError:
            await sio.emit('deck:error', {'error': 'Invalid deck request'}, to=sid)
            return
        resolved = _resolve(query.category, query.difficulty)
        if not resolved:
            await sio.emit('deck:error', {'error': f"Unknown deck: {query.category}/{query.difficulty}"}, to=sid)
            return
        cat, diff = resolved
        user_id = await _user_id(sid)
        try:
            words = await app.state.decks.get_deck(user_id, cat, diff)
        except DeckUnavailable as exc:
            await sio.emit('deck:error', {'deckId': exc.deck_id, 'error': str(exc)}, to=sid)
            return
        await sio.emit('deck:words', {'deckId': deck_id(cat, diff), 'words': words}, to=sid)

    @sio.on('deck:seen')
    async def deck_seen(sid, payload):
        try:
            event = SeenEvent.model_validate(payload)
        except ValidationError:
            return
        resolved = _resolve(event.category, event.difficulty)
        if not resolved:
            return
        user_id = await _user_id(sid)
        await app.state.decks.mark_seen(user_id, resolved[0], resolved[1], event.word)

    @sio.on('round:end')
    async def round_end(sid, payload):
        try:
            report = RoundReport.model_validate(payload)
        except ValidationError:
            await sio.emit('round:error', {'error': 'Invalid round report'}, to=sid)
            return
        resolved = _resolve(report.category, report.difficulty)
        if not resolved:
            await sio.emit('round:error', {'error': f"Unknown deck: {report.category}/{report.difficulty}"}, to=sid)
            return
        user_id = await _user_id(sid)
        await app.state.decks.mark_many_seen(user_id, resolved[0], resolved[1],
                                             report.correctWords + report.skippedWords)
        result = round_result(report.correctWords, report.skippedWords)
        await sio.emit('round:result', result.model_dump(), to=sid)


def create_asgi_app(config_class=Config, **kwargs):
    """REST app with Socket.IO mounted in front of it."""
    app = create_app(config_class, **kwargs)
    origins = config_class.CORS_ORIGINS
    sio = socketio.AsyncServer(async_mode='asgi', cors_allowed_origins='*' if origins == ['*'] else origins)
    register_socketio_handlers(sio, app)
    return socketio.ASGIApp(sio, other_asgi_app=app)


def application(config_class=Config):
    """Server entry point. Logging is configured here, not in the app factories."""
    configure_logging(config_class.LOG_LEVEL)
    return create_asgi_app(config_class)


# For local running: uvicorn headsup_server.main:application --factory --reload --host 0.0.0.0 --port 8000
