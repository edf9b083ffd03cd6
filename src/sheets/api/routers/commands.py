from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter

from ...domain.models import Command


router = APIRouter(prefix="/api", tags=["commands"])


_COMMANDS: List[Command] = [
    Command(
        id="analyze",
        name="analyze repository",
        description="deep dive into github repositories",
        icon="🔍",
        modes=["overview", "security", "patterns", "improvements", "learning"],
    ),
    Command(
        id="compare",
        name="compare codebases",
        description="compare two repositories or branches",
        icon="🔄",
        modes=["architecture", "dependencies", "patterns", "performance"],
    ),
    Command(
        id="extract",
        name="extract patterns",
        description="extract reusable patterns from code",
        icon="✨",
        modes=["components", "utilities", "architecture", "testing"],
    ),
    Command(
        id="audit",
        name="security audit",
        description="comprehensive security analysis",
        icon="🔒",
        modes=["vulnerabilities", "dependencies", "secrets", "compliance"],
    ),
    Command(
        id="document",
        name="generate docs",
        description="create beautiful documentation",
        icon="📚",
        modes=["api", "architecture", "setup", "contributing"],
    ),
    Command(
        id="vision",
        name="product vision",
        description="reimagine your product with AI",
        icon="🧘",
        modes=["features", "ux", "architecture", "philosophy"],
    ),
]


@router.get("/commands")
def list_commands() -> Dict[str, List[Command]]:
    return {"commands": _COMMANDS}
