"""
RemixHub Registry - FastAPI Application

Main entry point for the RemixHub registry backend.

Architecture:
- Design file + metadata -> Pinata (cid)
- cid -> keccak-256 -> cidHash (ledger/cache lookup key)
- cid -> Story Protocol registration -> ipId, txHash
- {cid, cidHash, ipId, txHash} -> registration cache (best-effort)
- RemixHub events (cidHash) -> batch lookup -> cid -> metadata
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .database import Database
from .routers import assets_router, designs_router, ipfs_router, story_router
from .services.external import EventScanner, GatewayLedgerClient, LedgerClient, PinataClient, StoryApiClient

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    pinning: Optional[PinataClient] = None,
    ledger: Optional[LedgerClient] = None,
    story_api: Optional[StoryApiClient] = None,
    event_scanner: Optional[EventScanner] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> FastAPI:
    """
    Build the application.

    Collaborators default to the real clients configured from settings;
    tests pass fakes instead.
    """
    settings = settings or get_settings()
    logging.getLogger("remixhub").setLevel(settings.log_level)

    database = database or Database(settings.database_url, echo=settings.database_echo)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Connect and create tables on startup; release the pool on shutdown."""
        database.connect()
        database.init_schema()
        yield
        database.dispose()

    app = FastAPI(
        lifespan=lifespan,
        title="RemixHub Registry",
        description="""
    RemixHub Registry - design IP publishing and remix attribution

    ## Flows
    1. **Upload**: design file + metadata pinned to IPFS, cid pre-anchored
    2. **Register**: cid registered on Story Protocol, ipId anchored
    3. **Remix**: parent ipId resolved from the cache, derivative registered
    4. **Browse**: RemixHub events -> batch lookup -> metadata

    ## Consistency
    - The ledger is authoritative; the registration cache is best-effort
    - Cache writes after a successful ledger write never fail the request
    - Parent resolution polls the cache for a bounded window
    """,
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.database = database
    app.state.sleep = sleep
    app.state.pinning = pinning or PinataClient(
        settings.pinata_jwt,
        api_url=settings.pinata_api_url,
        gateway_url=settings.ipfs_gateway_url,
        timeout=settings.http_timeout_seconds,
    )
    app.state.ledger = ledger or GatewayLedgerClient(
        settings.ledger_gateway_url,
        token=settings.ledger_gateway_token,
        chain_id=settings.story_chain_id,
        spg_nft_contract=settings.spg_nft_contract,
        rev_share=settings.commercial_rev_share,
    )
    app.state.story_api = story_api or StoryApiClient(
        settings.story_api_url,
        api_key=settings.story_api_key,
        timeout=settings.http_timeout_seconds,
    )
    app.state.event_scanner = event_scanner or EventScanner(
        settings.story_rpc_url,
        settings.remix_hub_address,
        from_block=settings.remix_hub_from_block,
        timeout=settings.http_timeout_seconds,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(story_router)
    app.include_router(ipfs_router)
    app.include_router(designs_router)
    app.include_router(assets_router)

    @app.get("/")
    async def root():
        """Root endpoint - API information."""
        return {
            "name": "RemixHub Registry",
            "version": VERSION,
            "description": "Design IP publishing and remix attribution",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": VERSION,
            "database": "connected" if database.is_connected else "disconnected",
        }

    return app


app = create_app()


# For running with: python -m remixhub.main
if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=get_settings().log_level)
    uvicorn.run(app, host="0.0.0.0", port=8001)
