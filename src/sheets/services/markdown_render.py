from __future__ import annotations

import markdown


EXTENSIONS = ["tables", "fenced_code", "sane_lists", "toc"]


def render_markdown(text: str) -> str:
    """Render a report to HTML with raw HTML passthrough disabled.

    Model output and user prompts are untrusted, so inline and block HTML are
    treated as text and escaped by the serializer.
    """
    md = markdown.Markdown(extensions=EXTENSIONS, output_format="html")
    md.preprocessors.deregister("html_block")
    md.inlinePatterns.deregister("html")
    return md.convert(text or "")
