from fastapi import HTTPException, Request
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from storage import TaskStore


def get_store(request: Request) -> TaskStore:
    """
    Returns the task store owned by the running application.
    Each app carries its own store on app.state, so independent apps never share state.
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
            detail="Task store is not initialized."
        )
    return store
