"""
RemixHub Registry - FastAPI dependencies

Collaborators are built once in create_app() and kept on app.state;
services are built per request around the request's session.
"""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import Settings
from .database import get_db
from .services.external import EventScanner, LedgerClient, PinataClient, StoryApiClient
from .services.registry import AnchorWriter, BatchLookup, ParentResolver, RegistrationCache


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_pinning(request: Request) -> PinataClient:
    return request.app.state.pinning


def get_ledger(request: Request) -> LedgerClient:
    return request.app.state.ledger


def get_story_api(request: Request) -> StoryApiClient:
    return request.app.state.story_api


def get_event_scanner(request: Request) -> EventScanner:
    return request.app.state.event_scanner


def get_cache(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> RegistrationCache:
    return RegistrationCache(db, batch_limit=settings.batch_lookup_limit)


def get_anchor_writer(cache: RegistrationCache = Depends(get_cache)) -> AnchorWriter:
    return AnchorWriter(cache)


def get_batch_lookup(
    cache: RegistrationCache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
) -> BatchLookup:
    return BatchLookup(cache, limit=settings.batch_lookup_limit)


def get_parent_resolver(
    request: Request,
    cache: RegistrationCache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
) -> ParentResolver:
    return ParentResolver(
        cache,
        max_attempts=settings.parent_resolve_attempts,
        delay_seconds=settings.parent_resolve_delay_seconds,
        sleep=request.app.state.sleep,
        story_api=request.app.state.story_api if settings.parent_cross_check else None,
    )
