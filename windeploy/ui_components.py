"""
windeploy - UI Components & Branding
Standardized headers and summary lines
"""

from rich.console import Console
from rich.markup import escape

LOGO = "windeploy"

# Color scheme
BRAND_COLOR = "cyan"
SUCCESS_COLOR = "green"
ERROR_COLOR = "red"


def show_header(
    title: str,
    subtitle: str = None,
    target: str = None,
    details: dict = None,
    console: Console = None,
):
    """
    Display a standardized windeploy command header.

    Args:
        title: Main title (e.g., "Deploy Installer", "Connectivity Check")
        subtitle: Optional subtitle line
        target: Target host (if applicable)
        details: Additional key-value pairs to display
        console: Rich Console instance (creates new if None)

    Example:
        show_header(
            title="Deploy Installer",
            target="web01",
            details={"Installer": "Anaconda3-2024.06-1-Windows-x86_64.exe"}
        )
    """
    if console is None:
        console = Console()

    prefix = f" [bold color(214)]{LOGO}[/bold color(214)] [dim]›[/dim]"

    console.print(f"{prefix} [bold white]{title}[/bold white]")

    if subtitle:
        console.print(f"{prefix} [dim]{escape(subtitle)}[/dim]")

    if target:
        console.print(f"{prefix} Target: [{BRAND_COLOR}]{escape(target)}[/{BRAND_COLOR}]")

    if details:
        for key, value in details.items():
            console.print(f"{prefix} {key}: [{BRAND_COLOR}]{escape(str(value))}[/{BRAND_COLOR}]")

    # Single blank line after header
    console.print()


def show_result(code: int, description: str, console: Console = None):
    """Print the final one-line outcome of an operation."""
    if console is None:
        console = Console()

    console.print()
    if code == 0:
        console.print(f"[bold {SUCCESS_COLOR}]✓ {description}[/bold {SUCCESS_COLOR}]")
    else:
        console.print(
            f"[bold {ERROR_COLOR}]✗ {description}[/bold {ERROR_COLOR}] [dim](exit code {code})[/dim]"
        )
