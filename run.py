import logging

import uvicorn
from mandalart.config import settings

if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    # Start the API server
    print(f"Starting API server on {settings.API_HOST}:{settings.API_PORT}...")
    uvicorn.run(
        "mandalart.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD
    )
