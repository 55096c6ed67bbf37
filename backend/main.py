import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from config import settings
from services.game_services import GameServices, get_game_services

logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Party rooms backend starting up...")
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY not set; quizzes will use the built-in question set")
    yield
    logger.info("Backend shutting down.")


app = FastAPI(
    title="Party Rooms",
    version=VERSION,
    description="Host + controller party games: quiz battle and who-is-the-spy",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.get("/health")
async def health_check(svc: GameServices = Depends(get_game_services)):
    return {
        "status": "ok",
        "service": "party-rooms",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **svc.room_store.get_room_stats(),
    }


from routers.game_router import router as game_router
from routers.ws_router import router as ws_router

app.include_router(game_router, prefix="/api")
app.include_router(ws_router)


# Serve compiled frontend when it sits next to the backend
_frontend_dist = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "frontend", "dist")
)
if os.path.isdir(_frontend_dist):
    app.mount("/", StaticFiles(directory=_frontend_dist, html=True), name="static")
    logger.info(f"Serving frontend from {_frontend_dist}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", 8000)), reload=settings.debug)
