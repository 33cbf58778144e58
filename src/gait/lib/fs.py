import os
from contextlib import suppress
from pathlib import Path
from tempfile import mkstemp


def read_file_safe(path: Path) -> str | None:
    """
    Reads a file as UTF-8 text, returning None when it is missing or unreadable.
    """
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """
    Replaces path with text in one step, so readers never observe a partial file.

    The content is written to a sibling temp file, flushed to disk and then
    renamed over the destination.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = mkstemp(suffix=path.suffix, prefix=path.name + ".tmp", dir=path.parent)
    tmp_path = Path(tmp)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            _ = f.write(text)
            f.flush()
            with suppress(OSError):
                os.fsync(f.fileno())

        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)
