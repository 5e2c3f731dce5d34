from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request

from app.core.rate_limit import enforce_delete_rate_limit, enforce_save_rate_limit
from app.schemas.tabs import DeleteTabResponse, SaveTabResponse, TabData, TabSummary
from app.services.tab_store import TabStore

router = APIRouter(tags=["Tabs"])


def get_tab_store(request: Request) -> TabStore:
    """FastAPI dependency returning the store owned by the running app."""
    return request.app.state.tab_store


TabStoreDep = Annotated[TabStore, Depends(get_tab_store)]


@router.post(
    "/save",
    response_model=SaveTabResponse,
    dependencies=[Depends(enforce_save_rate_limit)],
)
def save_tab(tab: TabData, store: TabStoreDep) -> SaveTabResponse:
    """Store a tablature.

    Subject to the save tier on top of the general tier. The response
    carries ``X-RateLimit-*`` headers for the save tier.

    Raises:
        RateLimitExceededError: 429 when the save tier is exhausted.
        StorageAppError: 500 when the file cannot be written.
    """
    return SaveTabResponse(filename=store.save(tab))


@router.get("/tabs", response_model=list[TabSummary])
def list_tabs(store: TabStoreDep) -> list[TabSummary]:
    return store.list_tabs()


@router.get("/load/{filename}")
def load_tab(filename: str, store: TabStoreDep) -> Any:
    """Return the stored document for ``filename`` (no ``.json`` suffix)."""
    return store.load(filename)


@router.delete(
    "/delete/{filename}",
    response_model=DeleteTabResponse,
    dependencies=[Depends(enforce_delete_rate_limit)],
)
def delete_tab(filename: str, store: TabStoreDep) -> DeleteTabResponse:
    """Delete a stored tablature; subject to the delete tier."""
    store.delete(filename)
    return DeleteTabResponse()
