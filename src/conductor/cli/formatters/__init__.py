"""Shared Rich console for CLI output.

Semantic styles:
- success: green
- warning: yellow
- error: red
- info: blue
"""

from rich.console import Console
from rich.theme import Theme

CONDUCTOR_THEME = Theme(
    {
        "success": "green",
        "warning": "yellow",
        "error": "red",
        "info": "blue",
        "muted": "dim",
        "highlight": "bold cyan",
    }
)

console = Console(theme=CONDUCTOR_THEME)

__all__ = ["CONDUCTOR_THEME", "console"]
