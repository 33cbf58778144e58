from gait.workspace import load_workspace


def delete_message(message_id: str) -> None:
    workspace = load_workspace()
    workspace.store.delete_message(message_id)
    print(f"Deleted message {message_id}.")


def delete_chat(chat_id: str) -> None:
    workspace = load_workspace()
    workspace.store.delete_chat(chat_id)
    print(f"Deleted panel chat {chat_id}.")


def delete_inline(inline_chat_id: str) -> None:
    workspace = load_workspace()
    workspace.store.delete_inline_chat(inline_chat_id)
    print(f"Deleted inline chat {inline_chat_id}.")
