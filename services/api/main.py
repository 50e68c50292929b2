"""
Ops Sheets API - Production Backend API
FastAPI over Google Sheets: delegations, checklists, to-dos, notifications,
users and departments, each table a sheet with a header row.

Install dependencies:
pip install -e .

Run server:
uvicorn main:app --host 0.0.0.0 --port 8000
"""

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional
import contextvars
import logging
import os
import time
import uuid

from core.dates import make_clock
from core.errors import StoreError
from core.schema import HeaderPolicy, SchemaRegistry
from models import StoreSet, build_stores
from settings import FAMILIES, Settings, get_settings

# ========== Request Context for Tracing ==========
request_id_var = contextvars.ContextVar('request_id', default=None)
request_start_time_var = contextvars.ContextVar('request_start_time', default=None)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================================
# BACKEND CONFIGURATION
# ============================================================================
settings = get_settings()

STORAGE_BACKEND = settings.storage_backend.lower()

logger.info(f"🔧 Storage Backend: {STORAGE_BACKEND.upper()}")

# ============================================================================
# STORAGE INITIALIZATION
# ============================================================================

def build_transport(cfg: Settings):
    """Sheets transport for the configured backend."""
    backend = cfg.storage_backend.lower()

    if backend == "sheets":
        from adapters.sheets import GspreadTransport

        sa_json = cfg.resolved_google_sa_json()  # Uses base64 if available
        has_documents = bool(cfg.sheets_spreadsheet_id) or all(
            getattr(cfg, f"{family}_spreadsheet_id") for family in FAMILIES
        )
        if not sa_json or not has_documents:
            raise ValueError("Google Sheets requires GOOGLE_SA_JSON and SHEETS_SPREADSHEET_ID")
        logger.info("Initializing Google Sheets transport...")
        return GspreadTransport(google_sa_json=sa_json, max_retries=cfg.sheets_max_retries)

    if backend == "memory":
        from adapters.memory import MemoryTransport

        logger.info(f"Initializing in-memory grid (file: {cfg.memory_store_path or 'none'})")
        return MemoryTransport(cfg.memory_store_path or None)

    raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")


def build_app_stores(cfg: Settings) -> StoreSet:
    registry = SchemaRegistry(
        ttl=cfg.schema_cache_ttl,
        policy=HeaderPolicy(cfg.header_policy.lower()),
    )
    return build_stores(
        build_transport(cfg),
        cfg.document_ids(),
        registry=registry,
        clock=make_clock(cfg.timezone),
        privileged_role=cfg.privileged_role,
    )


_stores: Optional[StoreSet] = None

# ---- DI helper (used by routers/*) ----
def get_stores() -> StoreSet:
    global _stores
    if _stores is None:
        try:
            _stores = build_app_stores(settings)
            logger.info(f"✓ Stores initialized ({STORAGE_BACKEND})")
        except Exception as e:
            logger.error(f"✗ Failed to initialize storage: {e}")
            raise
    return _stores

# ============================================================================
# FASTAPI APP
# ============================================================================

app = FastAPI(
    title="Ops Sheets API",
    description="Backend API for delegations, checklists, to-dos and users on Google Sheets",
    version="1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# ========== Request Tracing Middleware ==========
@app.middleware("http")
async def request_tracing_middleware(request, call_next):
    """Add request_id and timing to all requests."""
    request_id = str(uuid.uuid4())[:8]
    request_id_var.set(request_id)
    request_start_time_var.set(time.time())

    response = await call_next(request)

    latency = time.time() - request_start_time_var.get()
    logger.info(
        f"[{request_id}] {request.method} {request.url.path} -> "
        f"{response.status_code} ({round(latency * 1000, 2)} ms)"
    )

    response.headers["X-Request-ID"] = request_id
    return response


ALLOWED_ORIGINS = settings.get_origins_list()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreError)
async def store_exception_handler(request, exc: StoreError):
    """Domain errors -> 400/404/409/500/502 with a JSON body."""
    if exc.status_code >= 500:
        logger.error(f"[{request_id_var.get()}] {exc.code}: {exc.message}")
    else:
        logger.info(f"[{request_id_var.get()}] {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )

# ============================================================================
# ENDPOINTS
# ============================================================================

def _check_documents(stores: StoreSet) -> dict:
    """One metadata call per spreadsheet; returns family -> sheet count."""
    counts = {}
    for family, document_id in stores.documents.items():
        meta = stores.transport.get_document_metadata(document_id)
        counts[family] = len(meta.get("sheets", []))
    return counts


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    try:
        stores = get_stores()
        stores.transport.get_document_metadata(stores.documents["users"])
        return {
            "status": "healthy",
            "backend": STORAGE_BACKEND,
            "version": "1.0"
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "backend": STORAGE_BACKEND, "error": str(e)}
        )


@app.get("/healthz")
async def healthz():
    """
    Kubernetes-style liveness probe.
    Fast check - is the process alive and responding?
    """
    return {
        "status": "ok",
        "timestamp": time.time(),
        "version": "1.0"
    }


@app.get("/readyz")
async def readyz():
    """
    Kubernetes-style readiness probe.
    Checks every configured spreadsheet is reachable.
    Returns 200 if ready, 503 if not ready.
    """
    try:
        sheets = _check_documents(get_stores())
        return {
            "status": "ready",
            "backend": STORAGE_BACKEND,
            "sheets": sheets,
            "timestamp": time.time()
        }
    except Exception as e:
        logger.error(f"Readiness check failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "backend": STORAGE_BACKEND,
                "error": str(e),
                "timestamp": time.time()
            }
        )


@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "message": "Ops Sheets API",
        "version": "1.0",
        "backend": STORAGE_BACKEND,
        "status": "running",
        "docs": "/docs"
    }


from routers import delegations as delegations_router
app.include_router(delegations_router.router)

from routers import checklists as checklists_router
app.include_router(checklists_router.router)

from routers import todos as todos_router
app.include_router(todos_router.router)

from routers import notifications as notifications_router
app.include_router(notifications_router.router)

from routers import users as users_router
app.include_router(users_router.router)
app.include_router(users_router.departments_router)
app.include_router(users_router.login_router)


@app.on_event("startup")
async def startup_event():
    logger.info("Ops Sheets API starting up...")
    logger.info(f"Storage Backend: {STORAGE_BACKEND.upper()}")
    logger.info(f"Spreadsheets: {settings.document_ids()}")
    logger.info(f"Header policy: {settings.header_policy}")
    logger.info(f"Allowed origins: {ALLOWED_ORIGINS}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Ops Sheets API shutting down...")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=False)
