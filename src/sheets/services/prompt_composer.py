from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from ..domain.models import ContentBlock


PREAMBLE = (
    "You are an expert developer analyst. Your task is to perform deep research "
    "and analysis on the provided content."
)

CLOSING_INSTRUCTIONS = """Provide a comprehensive developer report that includes:
1. Deep analysis of the codebase/content structure
2. Key patterns, techniques, and concepts identified
3. Specific suggestions for improvements or applications
4. Code quality assessment and architectural insights
5. Potential security concerns or performance optimizations
6. Recommended tools, libraries, or approaches
7. Clear, structured markdown formatting throughout

Format your response in a clear, structured manner using markdown. Be thorough and technical."""

MODE_HINTS: Dict[str, str] = {
    "vision": "Channel minimalist philosophy and reimagine products with transformative AI experiences.",
    "design": "Focus on beautiful, functional design systems and component architectures.",
    "audit": "Conduct thorough security and code quality analysis with specific recommendations.",
    "create": "Generate production-ready code with modern patterns and best practices.",
    "brand": "Develop comprehensive brand identity and go-to-market strategies.",
}


def _section(title: str, blocks: Sequence[ContentBlock]) -> Optional[str]:
    if not blocks:
        return None
    return f"{title}:\n" + "".join(b.render() for b in blocks)


def compose_prompt(
    prompt: str,
    context_blocks: Sequence[ContentBlock] = (),
    url_blocks: Sequence[ContentBlock] = (),
    mode: Optional[str] = None,
) -> str:
    """Assemble the single completion prompt.

    Order is fixed: preamble, developer context, content to analyze, the user
    request, then the report instructions. Empty sections are omitted.
    """
    parts: List[str] = [PREAMBLE]
    for section in (
        _section("Developer Context", context_blocks),
        _section("Content to Analyze", url_blocks),
    ):
        if section:
            parts.append(section)
    parts.append(f"User Request: {prompt}")
    parts.append(CLOSING_INSTRUCTIONS)
    hint = MODE_HINTS.get((mode or "").strip().lower())
    if hint:
        parts.append(f"Mode: {mode}\n{hint}")
    return "\n\n".join(parts)


def build_messages(composed: str) -> List[Dict[str, str]]:
    return [{"role": "user", "content": composed}]
