import asyncio

from fastapi import APIRouter, Depends

from app.routes.movies import get_store
from app.services import metrics
from app.store.errors import StoreError
from app.store.json_store import JSONDocumentStore

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/health/store")
async def health_store(store: JSONDocumentStore = Depends(get_store)):
    resp = {
        "data_file": str(store.data_file),
        "exists": await asyncio.to_thread(store.data_file.exists),
        "metrics": metrics.summary(),
    }
    try:
        records = await store.load()
    except StoreError as e:
        resp.update({"store": "error", "error_code": e.code, "error": str(e)})
        return resp
    resp.update({"store": "ok", "count": len(records)})
    return resp
