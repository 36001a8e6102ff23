from gptnotes.ai.autocomplete import (
    AUTOCOMPLETE_SYSTEM_PROMPT,
    build_autocomplete_messages,
    completion_insert_text,
)


def test_messages_use_trimmed_text_before_cursor():
    messages = build_autocomplete_messages("\n  Once upon a  \n")
    assert messages == [
        {"role": "system", "content": AUTOCOMPLETE_SYSTEM_PROMPT},
        {"role": "user", "content": "Once upon a"},
    ]


def test_blank_text_yields_no_request():
    assert build_autocomplete_messages("") is None
    assert build_autocomplete_messages(" \n\t") is None
    assert build_autocomplete_messages(None) is None


def test_completion_starts_on_new_line():
    assert completion_insert_text("time there was") == "\ntime there was"
