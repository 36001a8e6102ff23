from __future__ import annotations

from typing import Optional

AUTOCOMPLETE_SYSTEM_PROMPT = (
    "You are an AI assistant that completes the texts users send you, respecting their previous "
    "style and tone. You do not say anything else, you simply continue the text you are given."
)


def build_autocomplete_messages(text_before_cursor: str) -> Optional[list[dict]]:
    """Return the completion payload for the text up to the cursor, or None if blank."""
    user_text = (text_before_cursor or "").strip()
    if not user_text:
        return None
    return [
        {"role": "system", "content": AUTOCOMPLETE_SYSTEM_PROMPT},
        {"role": "user", "content": user_text},
    ]


def completion_insert_text(response: str) -> str:
    # Completions always start on a fresh line below the cursor.
    return f"\n{response}"
