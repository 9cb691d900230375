import uvicorn
from digital_humans.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "digital_humans.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
