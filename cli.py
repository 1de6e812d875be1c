import argparse
from typing import Optional, Sequence

import uvicorn

from config import get_settings
from storage import StorageError, TaskNotFound, TaskStore, open_store


def load_store(tasks_file: Optional[str]) -> TaskStore:
    """Open the task file, surfacing read/parse errors instead of starting empty."""
    store = TaskStore(tasks_file)
    store.load()
    return store


def persistence_disabled(store: TaskStore) -> bool:
    if store.file_path is None:
        print("Error: no tasks file configured (set TASKS_FILE or --tasks-file); nothing would be saved")
        return True
    return False


def cmd_serve(args: argparse.Namespace) -> int:
    # Imported here so offline commands don't configure logging or build the app.
    from main import create_app

    app = create_app(open_store(args.tasks_file))
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    store = load_store(args.tasks_file)
    tasks = sorted(store.list(), key=lambda task: task.id)
    if not tasks:
        print("no tasks")
        return 0

    for task in tasks:
        state = "x" if task.done else " "
        print(f"[{state}] {task.id} {task.title}")
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    title = args.title.strip()
    if not title:
        print("Error: title must not be empty")
        return 1

    store = load_store(args.tasks_file)
    if persistence_disabled(store):
        return 1
    task = store.create(title)
    store.save()
    print(f"created: {task.id}")
    return 0


def cmd_done(args: argparse.Namespace) -> int:
    store = load_store(args.tasks_file)
    if persistence_disabled(store):
        return 1
    try:
        task = store.get(args.task_id)
        task.done = not args.undo
        store.update(task)
    except TaskNotFound:
        print("not found")
        return 1
    store.save()
    print("undone" if args.undo else "done")
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    store = load_store(args.tasks_file)
    if persistence_disabled(store):
        return 1
    try:
        store.delete(args.task_id)
    except TaskNotFound:
        print("not found")
        return 1
    store.save()
    print("deleted")
    return 0


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(prog="tasks", description="Task service and task file tool.")
    parser.add_argument(
        "--tasks-file",
        default=settings.tasks_file,
        help="Path to the JSON task file (default: $TASKS_FILE or tasks.json).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the HTTP service")
    serve.add_argument("--host", default=settings.host, help="Bind address.")
    serve.add_argument("--port", type=int, default=settings.port, help="Bind port.")
    serve.set_defaults(handler=cmd_serve)

    show = sub.add_parser("list", help="list tasks")
    show.set_defaults(handler=cmd_list)

    add = sub.add_parser("add", help="add task")
    add.add_argument("title")
    add.set_defaults(handler=cmd_add)

    done = sub.add_parser("done", help="mark task as done")
    done.add_argument("task_id", type=int)
    done.add_argument("--undo", action="store_true", help="Mark the task as not done instead.")
    done.set_defaults(handler=cmd_done)

    delete = sub.add_parser("delete", help="delete task")
    delete.add_argument("task_id", type=int)
    delete.set_defaults(handler=cmd_delete)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.handler(args))
    except StorageError as e:
        print(f"Error: {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
