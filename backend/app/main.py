import logging
from dotenv import load_dotenv

# Load .env as early as possible so config lookups see env vars
load_dotenv()

import uvicorn
from fastapi import FastAPI

from app import config
from app.routes import health, movies
from app.store.errors import StoreError

logger = logging.getLogger(__name__)

app = FastAPI(title="Movies API")


@app.on_event("startup")
async def _startup():
    if not config.create_if_missing():
        return
    store = movies.get_store()
    try:
        if await store.ensure_exists():
            logger.info("store: created empty collection at %s", store.data_file)
    except StoreError as e:
        logger.warning("store: could not create %s: %s", store.data_file, e)

app.include_router(health.router)
app.include_router(movies.router)

@app.get("/")
def root():
    return {"greetings": "Hello World!"}


if __name__ == "__main__":
    logging.basicConfig(level=config.log_level())
    logger.info("Server listening on http://%s:%s", config.host(), config.port())
    uvicorn.run(app, host=config.host(), port=config.port())
