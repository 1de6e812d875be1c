# routers/tasks.py
import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import AfterValidator, BaseModel
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_204_NO_CONTENT,
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from dependencies import get_store
from storage import StorageError, Task, TaskNotFound, TaskStore

logger = logging.getLogger(__name__)

# --- Router Setup ---
router = APIRouter(
    prefix="/tasks",
    tags=["Task Management"],
)


# --- Data Models ---
def require_utf8(value: str) -> str:
    # Lone surrogates cannot be written to the UTF-8 task file.
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError("title must be valid UTF-8 text")
    return value


Title = Annotated[str, AfterValidator(require_utf8)]


class TaskCreate(BaseModel):
    title: Title


class TaskUpdate(BaseModel):
    title: Optional[Title] = None
    done: Optional[bool] = None


# --- Helpers ---
MAX_TASK_ID = 2**63 - 1


def parse_task_id(task_id: str) -> int:
    """Task ids in paths must be positive decimal integers that fit in 64 bits."""
    digits = task_id.lstrip("0")
    # Checking the length first keeps int() away from arbitrarily long digit strings.
    if not (digits.isascii() and digits.isdigit()) or len(digits) > 19 or int(digits) > MAX_TASK_ID:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="invalid id")
    return int(digits)


def persist(store: TaskStore) -> None:
    # The mutation already happened in memory; a failed save is still reported to the client.
    try:
        store.save()
    except StorageError:
        logger.exception("Failed to persist tasks to %s", store.file_path)
        raise HTTPException(status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to persist")


def not_found() -> HTTPException:
    return HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Task not found")


# --- Endpoints ---
# Plain `def` endpoints run on the threadpool, so the store's lock sees real concurrency.

@router.get("", response_model=List[Task])
def list_tasks(store: TaskStore = Depends(get_store)):
    """Get the list of all tasks, in no particular order."""
    return store.list()


@router.post("", response_model=Task, status_code=HTTP_201_CREATED)
def create_task(payload: TaskCreate, store: TaskStore = Depends(get_store)):
    title = payload.title.strip()
    if not title:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="invalid body (need non-empty title)")

    task = store.create(title)
    persist(store)
    logger.info("Created task %s", task.id)
    return task


@router.get("/{task_id}", response_model=Task)
def get_task(task_id: str, store: TaskStore = Depends(get_store)):
    try:
        return store.get(parse_task_id(task_id))
    except TaskNotFound:
        raise not_found()


@router.put("/{task_id}", response_model=Task)
def update_task(task_id: str, payload: TaskUpdate, store: TaskStore = Depends(get_store)):
    """Apply only the supplied fields to the stored task."""
    task_id = parse_task_id(task_id)
    try:
        existing = store.get(task_id)
    except TaskNotFound:
        raise not_found()

    if payload.title is not None:
        title = payload.title.strip()
        if not title:
            raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="title cannot be empty")
        existing.title = title
    if payload.done is not None:
        existing.done = payload.done

    try:
        store.update(existing)
    except TaskNotFound:
        # Deleted between the read and the write.
        raise not_found()
    persist(store)
    return existing


@router.delete("/{task_id}", status_code=HTTP_204_NO_CONTENT, response_class=Response)
def delete_task(task_id: str, store: TaskStore = Depends(get_store)):
    try:
        store.delete(parse_task_id(task_id))
    except TaskNotFound:
        raise not_found()
    persist(store)
    return Response(status_code=HTTP_204_NO_CONTENT)
