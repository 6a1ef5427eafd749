import logging

import uvicorn

from humanseg.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("ultralytics").setLevel(logging.WARNING)

if __name__ == "__main__":
    uvicorn.run("humanseg.app:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL)
