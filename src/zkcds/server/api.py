"""
FastAPI server for private contact discovery.

Endpoints:
- GET /health - Index shape (no secrets)
- POST /query/blind - Round trip 1: (prefix, cP) -> (scP, bucket)
- POST /query/reveal - Round trip 2: sU -> ack

Points travel as base64-encoded SEC1 compressed bytes.
"""
import base64
import binascii
import logging
from typing import List, Optional
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from zkcds.server.compute import QueryEngine, RevealHook
from zkcds.server.index import Index
from zkcds.server.store import ServerSecret, ServerStore
from zkcds.shared.config import ServerSettings
from zkcds.shared.errors import ConfigurationError, InvalidRequestError, MalformedPointError
from zkcds.shared.protocol import BlindRequest, RevealRequest

logger = logging.getLogger(__name__)

MALFORMED_DETAIL = "malformed request"


# Pydantic models for API
class BlindQueryRequest(BaseModel):
    """Round trip 1 request."""
    prefix: int = Field(..., ge=0, description="Top N bits of SHA-256(phone)")
    point: str = Field(..., description="Base64 cP = [d_C]·hash2curve(phone)")


class BucketEntryModel(BaseModel):
    sp: str
    hsu: str


class BlindQueryResponse(BaseModel):
    """Round trip 1 response."""
    scp: str = Field(..., description="Base64 [d_S]·cP")
    bucket: List[BucketEntryModel]


class RevealQueryRequest(BaseModel):
    """Round trip 2 request."""
    su: str = Field(..., description="Base64 [d_S]·encode2curve(user_id)")


class RevealQueryResponse(BaseModel):
    """Acknowledgment only."""
    accepted: bool


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    prefix_bits: int
    num_entries: int
    num_buckets: int


# Server state
class ServerState:
    """Per-app state container, kept on app.state.server."""
    def __init__(self):
        self.store: Optional[ServerStore] = None
        self.engine: Optional[QueryEngine] = None


router = APIRouter()


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedPointError(cause=e)


def load_store(settings: ServerSettings) -> ServerStore:
    """
    Load persisted server state, or start with an empty index.

    Raises:
        ConfigurationError: state cannot be read, or ZKCDS_PREFIX_BITS was
            set and disagrees with the persisted prefix width
    """
    if settings.state_path:
        store = ServerStore.load(settings.state_path)
        if settings.prefix_bits is not None and settings.prefix_bits != store.prefix_bits:
            raise ConfigurationError(
                "ZKCDS_PREFIX_BITS does not match the persisted index",
                details={"env": settings.prefix_bits, "state": store.prefix_bits},
            )
        return store
    logger.warning("ZKCDS_STATE_PATH not set, serving an empty index")
    config = settings.protocol_config()
    return ServerStore(ServerSecret.generate(), Index(config.prefix_bits, {}), config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load server state on startup unless create_app() was given a store."""
    server = app.state.server
    if server.engine is None:
        server.store = load_store(ServerSettings.from_env())
        server.engine = QueryEngine(server.store)
    logger.info("Server ready: %r", server.store.index)
    yield
    logger.info("Server shutting down")


def get_engine(request: Request) -> QueryEngine:
    engine = request.app.state.server.engine
    if engine is None:
        raise HTTPException(status_code=503, detail="Server not initialized")
    return engine


@router.get("/health", response_model=HealthResponse)
async def health_check(engine: QueryEngine = Depends(get_engine)):
    """Health check endpoint."""
    index = engine.store.index
    return HealthResponse(
        status="healthy",
        prefix_bits=index.prefix_bits,
        num_entries=index.num_entries,
        num_buckets=index.num_buckets,
    )


@router.post("/query/blind", response_model=BlindQueryResponse)
def blind_query(request: BlindQueryRequest, engine: QueryEngine = Depends(get_engine)):
    """
    Round trip 1.

    Returns [d_S]·cP and every entry in the client's bucket. A bad point
    and a bad prefix get the same 400.
    """
    try:
        response = engine.blind(
            BlindRequest(prefix=request.prefix, point=_b64decode(request.point))
        )
    except (MalformedPointError, InvalidRequestError) as e:
        logger.debug("Rejected blind request: %s", e.to_dict()["code"])
        raise HTTPException(status_code=400, detail=MALFORMED_DETAIL)

    return BlindQueryResponse(
        scp=_b64encode(response.scp),
        bucket=[
            BucketEntryModel(sp=_b64encode(e.sp), hsu=_b64encode(e.hsu))
            for e in response.bucket
        ],
    )


@router.post("/query/reveal", response_model=RevealQueryResponse)
def reveal_query(request: RevealQueryRequest, engine: QueryEngine = Depends(get_engine)):
    """
    Round trip 2.

    Always answers with a bare acknowledgment; the body is identical for
    every kind of failure.
    """
    try:
        su = _b64decode(request.su)
    except MalformedPointError:
        return RevealQueryResponse(accepted=False)

    response = engine.reveal(RevealRequest(su=su))
    return RevealQueryResponse(accepted=response.accepted)


def create_app(
    store: Optional[ServerStore] = None,
    on_reveal: Optional[RevealHook] = None,
) -> FastAPI:
    """
    Create and configure a FastAPI app bound to one ServerStore.

    Each call returns a new app with its own state, so several servers
    with different secrets can run in one process. Without a store, the
    state is loaded from the environment at startup.
    """
    app_instance = FastAPI(
        title="zkcds",
        description="Private contact discovery API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app_instance.state.server = ServerState()
    if store is not None:
        app_instance.state.server.store = store
        app_instance.state.server.engine = QueryEngine(store, on_reveal=on_reveal)
    app_instance.include_router(router)
    return app_instance


# Default app for uvicorn, configured from ZKCDS_* at startup
app = create_app()


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Run the server directly."""
    import uvicorn
    settings = ServerSettings.from_env()
    uvicorn.run(app, host=host or settings.host, port=port or settings.port)


if __name__ == "__main__":
    run_server()
