"""
Operator prompts used wherever the pipeline needs a human decision.

The resolver, identifier assignment and merger only ever talk to a
Disambiguator; the terminal implementation below is what runs in production.
"""

from typing import List, Protocol

from rich import box
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from .cli_output.cli_ui import console as shared_console


class Disambiguator(Protocol):
    def inform(self, message: str) -> None:
        ...

    def choose_one(self, options: List[str], context: str) -> int:
        """Return the 0-based index of the chosen option"""
        ...

    def provide_value(self, context: str) -> str:
        ...


class TerminalDisambiguator:
    """Blocking prompts on the shared Rich console. There is no cancel option."""

    def __init__(self, console=None):
        self.console = console or shared_console

    def inform(self, message: str) -> None:
        self.console.print(message, style="navy_blue")

    def choose_one(self, options: List[str], context: str) -> int:
        if not options:
            raise ValueError(f"No options to choose from: {context}")

        table = Table(title=context, box=box.SIMPLE, header_style="bold")
        table.add_column("#", style="navy_blue", no_wrap=True)
        table.add_column("Option", style="white")
        for i, option in enumerate(options, start=1):
            table.add_row(str(i), option)
        self.console.print(table)

        while True:
            choice = IntPrompt.ask("Selection", console=self.console)
            if 1 <= choice <= len(options):
                return choice - 1
            self.console.print(f"Please enter a number between 1 and {len(options)}.", style="red")

    def provide_value(self, context: str) -> str:
        return Prompt.ask(context, console=self.console).strip()
