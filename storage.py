# storage.py
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


# --- Data Models ---
class Task(BaseModel):
    id: int
    title: str
    done: bool = False


class DiskImage(BaseModel):
    """The persisted image: the id counter plus every task, keyed by id."""
    next_id: Optional[int] = None
    data: Optional[Dict[int, Task]] = None


# --- Errors ---
class TaskNotFound(LookupError):
    def __init__(self, task_id: int):
        super().__init__(f"task {task_id} not found")
        self.task_id = task_id


class StorageError(Exception):
    """Raised when the persisted image cannot be read, parsed or written."""


# --- Locking ---
class ReadWriteLock:
    """
    Many concurrent readers or a single writer.
    Waiting writers block new readers so a steady stream of reads cannot starve them.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


# --- Store ---
class TaskStore:
    """
    In-memory task collection, optionally backed by a single JSON file.

    The store never saves on its own: callers flush with save() after each
    mutation. Construction always succeeds with an empty store; use
    load() (errors raised) or load_best_effort() (errors logged) to read
    the file, or open_store() to do both steps at once.
    """

    def __init__(self, file_path: Union[str, os.PathLike, None] = None):
        self._lock = ReadWriteLock()
        self._save_lock = threading.Lock()
        self._data: Dict[int, Task] = {}
        self._next_id = 1
        self._file_path = Path(file_path) if file_path else None

    @property
    def file_path(self) -> Optional[Path]:
        return self._file_path

    @property
    def next_id(self) -> int:
        with self._lock.read_locked():
            return self._next_id

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._data)

    def create(self, title: str) -> Task:
        with self._lock.write_locked():
            task_id = self._next_id
            self._next_id += 1
            task = Task(id=task_id, title=title, done=False)
            self._data[task_id] = task
        logger.debug("Task created id=%s", task_id)
        return task.model_copy()

    def list(self) -> List[Task]:
        with self._lock.read_locked():
            return [task.model_copy() for task in self._data.values()]

    def get(self, task_id: int) -> Task:
        with self._lock.read_locked():
            task = self._data.get(task_id)
            if task is None:
                raise TaskNotFound(task_id)
            return task.model_copy()

    def update(self, task: Task) -> None:
        with self._lock.write_locked():
            if task.id not in self._data:
                raise TaskNotFound(task.id)
            self._data[task.id] = task.model_copy()
        logger.debug("Task updated id=%s", task.id)

    def delete(self, task_id: int) -> None:
        with self._lock.write_locked():
            if task_id not in self._data:
                raise TaskNotFound(task_id)
            del self._data[task_id]
        logger.debug("Task deleted id=%s", task_id)

    def save(self) -> None:
        if self._file_path is None:
            return

        # Saves run one at a time so the newest snapshot is always the last one written.
        with self._save_lock:
            # Stored tasks are never mutated in place, so a shallow copy is a consistent snapshot.
            with self._lock.read_locked():
                image = DiskImage(next_id=self._next_id, data=dict(self._data))

            try:
                payload = image.model_dump_json(indent=2)
            except ValueError as e:
                raise StorageError(f"failed to serialize tasks: {e}") from e

            tmp_path = self._file_path.with_name(self._file_path.name + ".tmp")
            try:
                tmp_path.write_text(payload, encoding="utf-8")
                os.replace(tmp_path, self._file_path)
            except OSError as e:
                if tmp_path.exists():
                    tmp_path.unlink()
                raise StorageError(f"failed to write {self._file_path}: {e}") from e

    def load(self) -> None:
        if self._file_path is None:
            return

        try:
            raw = self._file_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"failed to read {self._file_path}: {e}") from e

        try:
            image = DiskImage.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"failed to parse {self._file_path}: {e}") from e

        data = image.data or {}
        if image.next_id is not None and image.next_id > 0:
            next_id = image.next_id
        else:
            next_id = max(data, default=0) + 1

        with self._lock.write_locked():
            self._data = data
            self._next_id = next_id
        logger.info("Loaded %d tasks from %s (next_id=%d)", len(data), self._file_path, next_id)

    def load_best_effort(self) -> bool:
        """Load the persisted image, starting empty instead of failing."""
        try:
            self.load()
        except StorageError as e:
            logger.warning("Ignoring unreadable task file, starting empty: %s", e)
            return False
        return True


def open_store(file_path: Union[str, os.PathLike, None]) -> TaskStore:
    store = TaskStore(file_path)
    store.load_best_effort()
    return store
