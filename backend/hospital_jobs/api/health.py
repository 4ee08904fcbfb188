from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health(request: Request):
    store = request.app.state.store
    return {"ok": True, "store": bool(store is not None and store.ping())}
