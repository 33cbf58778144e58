from collections.abc import Sequence
from pathlib import Path
from sys import exit
from typing import Annotated, Any, final

import typer
from typer.core import TyperGroup
from typing_extensions import override

from gait.exceptions import GaitError

app: typer.Typer


@final
class GaitGroup(TyperGroup):
    @override
    def main(  # pyright: ignore[reportAny]
        self,
        args: Sequence[str] | None = None,
        prog_name: str | None = None,
        complete_var: str | None = None,
        standalone_mode: bool = True,
        windows_expand_args: bool = True,
        **extra: Any,  # pyright: ignore[reportAny, reportExplicitAny]
    ) -> Any:  # pyright: ignore[reportExplicitAny]
        try:
            return super().main(args, prog_name, complete_var, standalone_mode, windows_expand_args, **extra)  #  pyright: ignore[reportAny]
        except GaitError as e:
            typer.secho(f"Error: {e.message}", err=True, fg=typer.colors.RED)
            exit(e.exit_code)
        except Exception as e:
            typer.secho("Unexpected Internal Error", err=True, fg=typer.colors.RED)
            typer.echo(str(e), err=True)
            exit(1)


app = typer.Typer(cls=GaitGroup, no_args_is_help=True)


@app.command("history")
def history(
    target: Annotated[
        Path | None,
        typer.Option(
            "--target",
            help="Only include commits that also changed this file.",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output the reconstructed history as JSON.",
        ),
    ] = False,
) -> None:
    """
    Show which chat messages each commit of the snapshot file introduced.
    """
    from gait.commands import history

    history.history(target, json_output)


@app.command("blame")
def blame(
    file_path: Annotated[Path, typer.Argument(help="The file to annotate.")],
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output the annotated line ranges as JSON.",
        ),
    ] = False,
) -> None:
    """
    Show which lines of a file came from AI chats, and the commit that recorded each chat.
    """
    from gait.commands import blame

    blame.blame(file_path, json_output)


@app.command("delete-message")
def delete_message(
    message_id: Annotated[str, typer.Argument(help="ID of the message to delete.")],
) -> None:
    """
    Delete a panel chat message and record the deletion in the ledger.
    """
    from gait.commands import delete

    delete.delete_message(message_id)


@app.command("delete-chat")
def delete_chat(
    chat_id: Annotated[str, typer.Argument(help="ID of the panel chat to delete.")],
) -> None:
    """
    Delete a whole panel chat and record the deletion in the ledger.
    """
    from gait.commands import delete

    delete.delete_chat(chat_id)


@app.command("delete-inline")
def delete_inline(
    inline_chat_id: Annotated[str, typer.Argument(help="ID of the inline chat to delete.")],
) -> None:
    """
    Delete an inline chat.
    """
    from gait.commands import delete

    delete.delete_inline(inline_chat_id)


if __name__ == "__main__":
    app()
