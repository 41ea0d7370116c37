import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from carevault.database import close_db, init_db
from carevault.errors import CareVaultError
from carevault.routers import access, prescriptions, profiles, records, refills, reminders, safety, wearables
from carevault.services.knowledge_base import get_knowledge_base

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting CareVault...")
    await init_db()
    logger.info("Database initialized")
    kb = get_knowledge_base()
    logger.info(
        "Drug knowledge base ready (%d allergy classes, %d interaction rules)",
        len(kb.allergy_classes), len(kb.interactions),
    )
    yield
    await close_db()
    logger.info("CareVault shut down")


app = FastAPI(
    title="CareVault",
    description="Patient health records with emergency QR access and prescription safety checks",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(CareVaultError)
async def handle_domain_error(request: Request, exc: CareVaultError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


# Include routers
app.include_router(profiles.router)
app.include_router(access.router)
app.include_router(prescriptions.router)
app.include_router(records.router)
app.include_router(refills.router)
app.include_router(reminders.router)
app.include_router(wearables.router)
app.include_router(safety.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
