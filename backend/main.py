from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
import logging
import sys

from api import downloads, entries
from config.app_config import load_app_config
from constants import ServerConfig
from dependencies import build_services
from services.websocket import websocket_endpoint
from utils.logging_utils import ContextFormatter

APP_VERSION = "1.0.0"

app_config = load_app_config()


def configure_logging(config=app_config):
    """Rotating file handler (10MB x 5) plus stdout, installed on the root logger."""
    config.log_dir.mkdir(parents=True, exist_ok=True)
    log_file = config.log_dir / "backend.log"

    log_formatter = ContextFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(log_formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(config.log_level)
    for handler in list(root_logger.handlers):
        if getattr(handler, "_mediaforge", False):
            root_logger.removeHandler(handler)
            handler.close()
    for handler in (file_handler, console_handler):
        handler._mediaforge = True
        root_logger.addHandler(handler)

    # Per-request access lines from httpx are too chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return log_file


LOG_FILE = configure_logging()
logger = logging.getLogger(__name__)
logger.info(f"Logging initialized: {LOG_FILE}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the session-scoped services on startup and tear them down on shutdown."""
    factory = getattr(app.state, "service_factory", None)
    app.state.services = factory() if factory is not None else build_services(app_config)
    logger.info("MediaForge backend started")
    try:
        yield
    finally:
        logger.info("Shutting down: cancelling in-flight downloads...")
        await app.state.services.aclose()
        logger.info("Application shutdown complete")


app = FastAPI(
    title="MediaForge API",
    description="Media file conversion and direct-link video downloads",
    version=APP_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(entries.router, prefix="/api", tags=["entries"])
app.include_router(downloads.router, prefix="/api", tags=["downloads"])


@app.websocket("/api/ws")
async def websocket_route(websocket: WebSocket):
    """WebSocket endpoint for real-time entry events"""
    await websocket_endpoint(websocket, websocket.app.state.services.connections)


@app.get("/api/health")
def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "service": "MediaForge API",
        "version": APP_VERSION
    }


if __name__ == "__main__":
    import uvicorn

    bind_host = app_config.server_host or ServerConfig.HOST
    logger.info(f"Starting MediaForge on http://{bind_host}:{ServerConfig.PORT}...")
    uvicorn.run(app, host=bind_host, port=ServerConfig.PORT)
