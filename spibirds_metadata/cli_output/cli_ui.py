from rich.console import Console
from rich.table import Table
from rich import box
import pyfiglet

# Exported, shared console for the app
console = Console()


def print_separator(title: str | None = None) -> None:
    """Print a simple, consistent separator using hyphens."""
    line = "-" * 100
    if title and title.strip():
        console.print(line, style="dim")
        console.print(title.strip(), style="bold white")
        console.print(line, style="dim")
    else:
        console.print(line, style="dim")


def print_header() -> None:
    """Render the application header using pyfiglet and Rich."""
    title = pyfiglet.figlet_format("SPI-Birds", font="standard")
    console.print(title, style="navy_blue")
    console.print("Metadata submission to EML converter", style="bold navy_blue")
    print_separator()


def print_usage() -> None:
    """Show the operator-facing commands in a scannable table."""
    table = Table(title="Usage", box=box.SIMPLE, show_lines=False, header_style="bold")
    table.add_column("Step", style="navy_blue", no_wrap=True)
    table.add_column("Command", style="white")
    table.add_column("Description", style="dim")

    table.add_row(
        "1",
        "python main.py convert",
        "Convert a metadata submission to a schema-valid EML document and a conversion result file",
    )
    table.add_row(
        "2",
        "python main.py merge <result.yaml>",
        "Add the converted study, site and species to the reference tables (archived first)",
    )
    table.add_row(
        "opt.",
        "python main.py add-party <eml.xml> --to creator",
        "Add an extra creator, metadata provider or contact to an existing EML document",
    )

    console.print(table)
    console.print("Run `python main.py <command> --help` for flags.", style="dim")


def print_registered_ids(ids: dict) -> None:
    """Echo the identifiers registered for the current entry so the operator can cross-check them."""
    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Identifier", style="navy_blue", no_wrap=True)
    table.add_column("Value", style="bold white")
    for name, value in ids.items():
        table.add_row(name, "" if value is None else str(value))
    console.print(table)
