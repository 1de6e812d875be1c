import json
from pathlib import Path

import pytest

from cli import main
from storage import TaskStore


def run(tasks_path: Path, *args: str) -> int:
    return main(["--tasks-file", str(tasks_path), *args])


def test_add_list_done_delete(tasks_path: Path, capsys: pytest.CaptureFixture) -> None:
    assert run(tasks_path, "add", "  Learn argparse ") == 0
    assert run(tasks_path, "add", "Ship it") == 0
    assert capsys.readouterr().out.splitlines() == ["created: 1", "created: 2"]

    assert run(tasks_path, "done", "2") == 0
    assert run(tasks_path, "list") == 0
    out = capsys.readouterr().out.splitlines()
    assert out[-2:] == ["[ ] 1 Learn argparse", "[x] 2 Ship it"]

    assert run(tasks_path, "done", "2", "--undo") == 0
    assert run(tasks_path, "delete", "1") == 0

    store = TaskStore(tasks_path)
    store.load()
    assert [(task.id, task.title, task.done) for task in store.list()] == [(2, "Ship it", False)]


def test_list_empty(tasks_path: Path, capsys: pytest.CaptureFixture) -> None:
    assert run(tasks_path, "list") == 0
    assert capsys.readouterr().out.strip() == "no tasks"


def test_add_rejects_blank_title(tasks_path: Path) -> None:
    assert run(tasks_path, "add", "   ") == 1
    assert not tasks_path.exists()


def test_unknown_id(tasks_path: Path, capsys: pytest.CaptureFixture) -> None:
    assert run(tasks_path, "done", "5") == 1
    assert run(tasks_path, "delete", "5") == 1
    assert capsys.readouterr().out.splitlines() == ["not found", "not found"]


def test_corrupt_file_is_reported_and_left_alone(tasks_path: Path, capsys: pytest.CaptureFixture) -> None:
    tasks_path.write_text("{broken", encoding="utf-8")

    assert run(tasks_path, "add", "Would overwrite") == 2
    assert capsys.readouterr().out.startswith("Error: failed to parse")
    assert tasks_path.read_text(encoding="utf-8") == "{broken"


def test_tasks_file_defaults_to_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / "from_env.json"
    monkeypatch.setenv("TASKS_FILE", str(env_file))

    assert main(["add", "Via env"]) == 0
    image = json.loads(env_file.read_text(encoding="utf-8"))
    assert image["data"]["1"]["title"] == "Via env"


@pytest.mark.parametrize("command", [["add", "Lost on exit"], ["done", "1"], ["delete", "1"]])
def test_mutations_need_a_tasks_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture, command: list
) -> None:
    monkeypatch.setenv("TASKS_FILE", "")
    monkeypatch.chdir(tmp_path)

    assert main(command) == 1
    assert "no tasks file configured" in capsys.readouterr().out
    assert list(tmp_path.iterdir()) == []


def test_list_works_without_a_tasks_file(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setenv("TASKS_FILE", "")

    assert main(["list"]) == 0
    assert capsys.readouterr().out.strip() == "no tasks"
