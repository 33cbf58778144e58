import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from gait.history import (
    CommitData,
    GitHistoryData,
    UncommittedData,
    get_history,
    get_history_for_commits_touching_target,
)
from gait.serialization import to_pretty_json
from gait.workspace import load_workspace, repo_relative


def _first_line(text: str | None) -> str:
    lines = (text or "").strip().splitlines()
    return lines[0] if lines else ""


def _add_commit_rows(table: Table, commit: CommitData) -> None:
    first = True
    for chat in commit.panel_chats:
        for message in chat.messages:
            table.add_row(
                commit.commit_hash[:8] if first else "",
                commit.date.strftime("%Y-%m-%d %H:%M") if first else "",
                commit.author if first else "",
                chat.custom_title or chat.id,
                _first_line(message.request_text),
            )
            first = False
    for inline_chat in commit.inline_chats:
        table.add_row(
            commit.commit_hash[:8] if first else "",
            commit.date.strftime("%Y-%m-%d %H:%M") if first else "",
            commit.author if first else "",
            "[magenta]inline[/magenta]",
            _first_line(inline_chat.prompt),
        )
        first = False
    table.add_section()


def _add_uncommitted_rows(table: Table, label: str, data: UncommittedData | None) -> None:
    if data is None:
        return
    for chat in data.panel_chats:
        for message in chat.messages:
            table.add_row(label, "", "", chat.custom_title or chat.id, _first_line(message.request_text), style="dim")
    for inline_chat in data.inline_chats:
        table.add_row(label, "", "", "[magenta]inline[/magenta]", _first_line(inline_chat.prompt), style="dim")


def _render(data: GitHistoryData) -> None:
    console = Console()
    if not data.commits and data.added is None and data.uncommitted is None:
        console.print("No chat history found.")
        return

    table = Table(title="Chat History", show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("Commit")
    table.add_column("Date")
    table.add_column("Author")
    table.add_column("Chat")
    table.add_column("Message Snippet", overflow="ellipsis", min_width=20)

    for commit in data.commits:
        _add_commit_rows(table, commit)
    _add_uncommitted_rows(table, "[yellow]staged[/yellow]", data.added)
    _add_uncommitted_rows(table, "[yellow]pending[/yellow]", data.uncommitted)
    console.print(table)


def history(target: Path | None, json_output: bool) -> None:
    workspace = load_workspace()

    if target is None:
        data = get_history(workspace.repo, workspace.store, workspace.snapshot_rel_path)
    else:
        target_rel = repo_relative(workspace.root, target)
        data = get_history_for_commits_touching_target(
            workspace.repo, workspace.store, workspace.snapshot_rel_path, target_rel
        )

    for message_id in data.drifted_message_ids:
        print(
            f"Warning: Message {message_id} changed content across commits; showing its earliest version.",
            file=sys.stderr,
        )

    if json_output:
        print(to_pretty_json(data))
    else:
        _render(data)
