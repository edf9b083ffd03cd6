from src.sheets.domain.models import ContentBlock
from src.sheets.services.prompt_composer import PREAMBLE, build_messages, compose_prompt


def test_sections_are_omitted_when_empty():
    out = compose_prompt("Explain #nothing")
    assert out.startswith(PREAMBLE)
    assert "Developer Context:" not in out
    assert "Content to Analyze:" not in out
    assert "User Request: Explain #nothing" in out


def test_context_and_content_precede_the_request_and_instructions():
    ctx = [ContentBlock(origin="a.md", label="File", title="a.md", text="alpha")]
    urls = [ContentBlock(origin="https://x.io", label="URL", title="https://x.io", text="page")]

    out = compose_prompt("Do the thing", ctx, urls)

    positions = [
        out.index(PREAMBLE),
        out.index("Developer Context:"),
        out.index("File: a.md"),
        out.index("Content to Analyze:"),
        out.index("URL: https://x.io"),
        out.index("User Request: Do the thing"),
        out.index("Provide a comprehensive developer report"),
    ]
    assert positions == sorted(positions)
    for n in range(1, 8):
        assert f"\n{n}. " in out


def test_known_mode_appends_hint_and_unknown_mode_is_ignored():
    assert "Mode: audit" in compose_prompt("check", mode="audit")
    assert "Mode:" not in compose_prompt("check", mode="nonsense")


def test_messages_are_a_single_user_turn():
    assert build_messages("hello") == [{"role": "user", "content": "hello"}]
