import logging
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from digital_humans.core.config import settings
from digital_humans.core.database import SessionLocal, init_db
from digital_humans.core.exceptions import AppError
from digital_humans.core.logger import setup_logging
from digital_humans.controllers import auth_controller, digital_human_controller, realtime_controller
from digital_humans.services.chat_service import chat_service
from digital_humans.services.digital_human_service import digital_human_service

setup_logging(settings.log_level)
logger = logging.getLogger("main")

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    db = SessionLocal()
    try:
        digital_human_service.load_all(db)
    finally:
        db.close()
    logger.info(f"{settings.app_name} started on port {settings.port}")
    yield
    logger.info(f"{settings.app_name} shutting down")

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

API_PREFIX = "/api"

# Include routers
app.include_router(auth_controller.router, prefix=API_PREFIX)
app.include_router(digital_human_controller.router, prefix=API_PREFIX)
app.include_router(realtime_controller.router)

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, **exc.to_dict()},
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error", "code": "INTERNAL_ERROR"},
    )

# Health check endpoint
@app.get("/health")
async def health_check():
    return {
        "status": "OK",
        "app": settings.app_name,
        "activeHumans": digital_human_service.cache_size(),
        "chatSessions": chat_service.cached_session_count(),
        "timestamp": datetime.utcnow().isoformat(),
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "digital_humans.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug
    )
