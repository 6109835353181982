import asyncio
import logging
import os
import subprocess
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from courtclub import config
from courtclub.database import init_db
from courtclub.errors import ClubError
from courtclub.routes import admin, bookings, courts, matches, members, notifications, tournaments, wallet, ws
from courtclub.services.push_service import get_push_service
from courtclub.services.sweeper import get_sweeper

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Court Club API")


def get_build_info():
    """Get git commit hash or build timestamp"""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except Exception:
        pass

    return datetime.now().strftime("%Y%m%d-%H%M%S")


BUILD_HASH = get_build_info()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ClubError)
async def club_error_handler(request: Request, exc: ClubError):
    """Domain errors -> {"detail": "CODE: message"} with the error's status"""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.include_router(members.router, prefix="/api", tags=["members"])
app.include_router(courts.router, prefix="/api", tags=["courts"])
app.include_router(bookings.router, prefix="/api", tags=["bookings"])
app.include_router(wallet.router, prefix="/api", tags=["wallet"])
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
app.include_router(matches.router, prefix="/api", tags=["matches"])
app.include_router(notifications.router, prefix="/api", tags=["notifications"])
app.include_router(admin.router, prefix="/api", tags=["admin"])

# WebSocket push hub (no /api prefix)
app.include_router(ws.router)


@app.on_event("startup")
async def on_startup():
    init_db()
    get_push_service().bind(asyncio.get_running_loop())
    if config.SWEEPER_ENABLED:
        get_sweeper().start()
    else:
        logger.info("Sweeper disabled (SWEEPER_ENABLED=false)")
    logger.info("Court Club API started (build %s)", BUILD_HASH)


@app.on_event("shutdown")
async def on_shutdown():
    get_sweeper().stop()
    get_push_service().unbind()


@app.get("/api/health")
def health_check():
    return {"app_name": "Court Club API", "build_hash": BUILD_HASH, "status": "healthy"}
