"""
Response formatting shared by every tool.

Successful responses follow a 70/20/10 layout: a short summary, the data
itself, then numbered next steps and a metadata footer. Errors carry a code,
a retry hint, concrete fix steps and alternative tool calls so the agent can
recover without a human.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

__all__ = [
    "format_success",
    "format_error",
    "format_batch_header",
    "format_duration",
    "format_number",
    "truncate_text",
]


def format_number(value: Any) -> str:
    """Thousands separators for ints, passthrough for everything else."""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return f"{value:,}"
    return str(value)


def format_duration(ms: float) -> str:
    if ms < 1000:
        return f"{int(ms)}ms"
    seconds = ms / 1000
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {int(seconds % 60)}s"


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    if max_length <= 3:
        return text[:max_length]
    return text[: max_length - 3] + "..."


def _numbered(items: Sequence[str]) -> List[str]:
    return [f"{i}. {item}" for i, item in enumerate(items, start=1)]


def format_success(
    title: str,
    summary: str,
    data: str,
    next_steps: Optional[Sequence[str]] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> str:
    """Render a successful tool response."""
    parts = [f"# ✅ {title}", "", summary.strip(), "", "---", "", data.strip()]

    if next_steps:
        parts += ["", "---", "", "**Next Steps:**"]
        parts += _numbered(next_steps)

    if metadata:
        footer = " | ".join(f"{k}: {format_number(v)}" for k, v in metadata.items())
        parts += ["", "---", f"*{footer}*"]

    return "\n".join(parts)


def format_error(
    code: str,
    message: str,
    tool_name: Optional[str] = None,
    retryable: bool = False,
    how_to_fix: Optional[Sequence[str]] = None,
    alternatives: Optional[Sequence[str]] = None,
) -> str:
    """Render a structured error with remediation guidance."""
    code = getattr(code, "value", code)
    heading = f"# ❌ {tool_name} failed" if tool_name else "# ❌ Error"
    parts = [heading, "", f"**Error code:** `{code}`", "", message.strip()]

    if retryable:
        parts += ["", "🔄 **Retryable:** yes — this is usually temporary."]

    if how_to_fix:
        parts += ["", "**How to fix:**"]
        parts += _numbered(how_to_fix)

    if alternatives:
        parts += ["", "**Alternatives:**"]
        parts += [f"- {alt}" for alt in alternatives]

    return "\n".join(parts)


def format_batch_header(
    title: str,
    total_items: int,
    successful: int,
    failed: int,
    tokens_per_item: Optional[int] = None,
    batches: Optional[int] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> str:
    """Summary block describing a batch operation."""
    lines = [
        f"**{title}**",
        f"- Items: {total_items} | ✅ {successful} succeeded | ❌ {failed} failed",
    ]
    if tokens_per_item is not None:
        lines.append(f"- Token allocation: {format_number(tokens_per_item)} tokens/item")
    if batches is not None:
        lines.append(f"- Batches: {batches}")
    for key, value in (extras or {}).items():
        lines.append(f"- {key}: {format_number(value)}")
    return "\n".join(lines)
