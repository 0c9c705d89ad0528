import logging

import uvicorn
from subtracker.config import settings

if __name__ == '__main__':
    logging.basicConfig(level=settings.LOG_LEVEL)
    uvicorn.run("subtracker.api:app", host="0.0.0.0", port=settings.BACKEND_PORT, reload=settings.is_development)
