import sys
from collections import defaultdict
from pathlib import Path
from typing import Literal

from msgspec import Struct
from rich.console import Console
from rich.table import Table

from gait.exceptions import NotFoundError, PersistenceError
from gait.history import AttributionIndex, build_attribution_index, get_history
from gait.lib.fs import read_file_safe
from gait.matching import InlineMatch, LineMatch, LineRange, PanelMatch, annotate_file, line_owners, merge_ranges
from gait.serialization import to_pretty_json
from gait.workspace import ActiveWorkspace, load_workspace, repo_relative


class BlameEntry(Struct, frozen=True):
    # One-based, inclusive
    start_line: int
    end_line: int
    kind: Literal["inline", "panel"]
    record_id: str
    title: str
    message_id: str | None = None
    commit_hash: str | None = None


def _record_key(owner: LineMatch) -> tuple[str, str]:
    match owner:
        case InlineMatch(inline_chat=inline_chat):
            return "inline", inline_chat.inline_chat_id
        case PanelMatch(message=message):
            return "panel", message.id


def _entry(rng: LineRange, owner: LineMatch, index: AttributionIndex) -> BlameEntry:
    match owner:
        case InlineMatch(inline_chat=inline_chat):
            commit = index.commit_for_inline_chat(inline_chat.inline_chat_id)
            return BlameEntry(
                start_line=rng.start + 1,
                end_line=rng.end + 1,
                kind="inline",
                record_id=inline_chat.inline_chat_id,
                title=(inline_chat.prompt or "").strip(),
                commit_hash=commit.commit_hash if commit else None,
            )
        case PanelMatch(panel_chat=panel_chat, message=message):
            commit = index.commit_for_message(message.id)
            return BlameEntry(
                start_line=rng.start + 1,
                end_line=rng.end + 1,
                kind="panel",
                record_id=panel_chat.id,
                title=panel_chat.custom_title or (message.request_text or "").strip(),
                message_id=message.id,
                commit_hash=commit.commit_hash if commit else None,
            )


def _attribution_index(workspace: ActiveWorkspace) -> AttributionIndex:
    if not workspace.snapshot_path.exists():
        return AttributionIndex()
    return build_attribution_index(get_history(workspace.repo, workspace.store, workspace.snapshot_rel_path))


def compute_blame(workspace: ActiveWorkspace, file_path: Path) -> list[BlameEntry]:
    """
    Annotates file_path and returns its owned line ranges, in file order.

    Messages whose code is found in the file are associated with it in the
    stored snapshot.
    """
    rel_path = repo_relative(workspace.root, file_path)
    content = read_file_safe(workspace.root / rel_path)
    if content is None:
        raise NotFoundError(f"File not found: {workspace.root / rel_path}")

    annotations = annotate_file(
        workspace.store.read_current(),
        rel_path,
        content,
        workspace.store.pending_panel_chats,
    )
    index = _attribution_index(workspace)

    for message_id in annotations.associations:
        try:
            _ = workspace.store.associate_file_with_message(message_id, rel_path)
        except PersistenceError as e:
            print(f"Warning: Could not associate {rel_path} with message {message_id}: {e.message}", file=sys.stderr)

    lines_by_record: dict[tuple[str, str], list[LineRange]] = defaultdict(list)
    owner_by_record: dict[tuple[str, str], LineMatch] = {}
    for line, owner in line_owners(annotations).items():
        key = _record_key(owner)
        lines_by_record[key].append(LineRange(line, line))
        _ = owner_by_record.setdefault(key, owner)

    entries = [
        _entry(rng, owner_by_record[key], index)
        for key, single_lines in lines_by_record.items()
        for rng in merge_ranges(single_lines)
    ]
    return sorted(entries, key=lambda e: (e.start_line, e.end_line))


def blame(file_path: Path, json_output: bool) -> None:
    workspace = load_workspace()
    entries = compute_blame(workspace, file_path)

    if json_output:
        print(to_pretty_json(entries))
        return

    console = Console()
    if not entries:
        console.print(f"No AI-generated code found in {file_path}.")
        return

    table = Table(title=f"AI Blame: {file_path}", show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("Lines", justify="right")
    table.add_column("Kind")
    table.add_column("Commit")
    table.add_column("Chat", overflow="ellipsis", min_width=20)

    for entry in entries:
        lines = str(entry.start_line) if entry.start_line == entry.end_line else f"{entry.start_line}-{entry.end_line}"
        kind = "[magenta]inline[/magenta]" if entry.kind == "inline" else "[green]panel[/green]"
        commit = entry.commit_hash[:8] if entry.commit_hash else "[yellow]uncommitted[/yellow]"
        title_lines = entry.title.splitlines()
        table.add_row(lines, kind, commit, title_lines[0] if title_lines else entry.record_id)
    console.print(table)
