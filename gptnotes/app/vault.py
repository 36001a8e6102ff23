from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

NOTE_SUFFIX = ".md"


class VaultAccessError(RuntimeError):
    pass


def _resolve(root: Path, relative_path: str) -> Path:
    if not relative_path:
        raise VaultAccessError("Path must not be empty")
    root = root.resolve()
    rel = relative_path.lstrip("/")
    target = (root / rel).resolve()
    if root not in target.parents and target != root:
        raise VaultAccessError("Attempted access outside the vault root")
    return target


def daily_note_path(day: dt.date) -> str:
    """Vault-relative path of the daily note: ``YYYY/YYYY-MM/YYYY-MM-DD/YYYY-MM-DD.md``."""
    year = f"{day:%Y}"
    month = f"{day:%Y-%m}"
    stamp = f"{day:%Y-%m-%d}"
    return f"{year}/{month}/{stamp}/{stamp}{NOTE_SUFFIX}"


def ensure_daily_note(root: Path, day: Optional[dt.date] = None) -> tuple[Path, bool]:
    """Ensure the daily note exists and return its file path and creation flag.

    Missing year/month/day folders are created. An existing note is never
    overwritten; a new one starts with a level-one heading of the date.
    """
    day = day or dt.date.today()
    note = _resolve(root, daily_note_path(day))
    note.parent.mkdir(parents=True, exist_ok=True)
    created = not note.exists()
    if created:
        note.write_text(f"# {day:%Y-%m-%d}\n\n", encoding="utf-8")
        logger.info("Created daily note %s", note)
    return note, created


def read_note(root: Path, path: str) -> str:
    target = _resolve(root, path)
    if not target.exists():
        raise FileNotFoundError(target)
    try:
        return target.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise VaultAccessError("File is not UTF-8 encoded text.") from exc


def write_note(root: Path, path: str, content: str) -> None:
    target = _resolve(root, path)
    if target.suffix.lower() != NOTE_SUFFIX:
        raise VaultAccessError(f"Notes must use the {NOTE_SUFFIX} suffix.")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")


def list_notes(root: Path) -> List[str]:
    """Return vault-relative posix paths of every note, skipping hidden folders."""
    root = root.resolve()
    results: List[str] = []
    for path in root.rglob(f"*{NOTE_SUFFIX}"):
        rel = path.relative_to(root)
        if any(part.startswith(".") for part in rel.parts):
            continue
        if path.is_file():
            results.append(rel.as_posix())
    return sorted(results)
