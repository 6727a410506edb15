import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from db.database import engine, Base
from auth.routes import router as auth_router
from api.reports import router as reports_router
from api.logs import router as logs_router
from api.emergency import router as emergency_router
from api.timeline import router as timeline_router
from api.insights import router as insights_router
from api.analysis import router as analysis_router
from api.chat import router as chat_router
from services.record_store import StorageFault

logging.basicConfig(
    level=getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

settings.validate_security_configuration()

# Create all tables
Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.APP_NAME, version="1.0.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_timing_middleware(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000.0
    logger.debug(f"{request.method} {request.url.path} -> {response.status_code} in {duration_ms:.1f}ms")
    return response


@app.exception_handler(StorageFault)
async def storage_fault_handler(request: Request, exc: StorageFault):
    logger.error(f"Storage fault on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage is unavailable. Your change was not saved."},
    )


# Routers
app.include_router(auth_router, prefix="/api")
app.include_router(reports_router, prefix="/api")
app.include_router(logs_router, prefix="/api")
app.include_router(emergency_router, prefix="/api")
app.include_router(timeline_router, prefix="/api")
app.include_router(insights_router, prefix="/api")
app.include_router(analysis_router, prefix="/api")
app.include_router(chat_router, prefix="/api")


@app.get("/api/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}
