from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from rich.console import Console

    from argscaffold.definition import CommandLineArgument


class Prompter(Protocol):
    """Interactive collaborator used for missing required values and secure input.

    Calls block until the user answers; there is no timeout.
    """

    def prompt(self, argument: "CommandLineArgument", /) -> str: ...

    def prompt_secret(self, argument: "CommandLineArgument", /) -> str: ...


class ConsolePrompter:
    """Asks on the terminal with :class:`rich.prompt.Prompt`."""

    def __init__(self, console: Optional["Console"] = None):
        self.console = console

    def _label(self, argument: "CommandLineArgument") -> str:
        if argument.help:
            return f"Enter value for [bold]{argument.display_name}[/bold] ({argument.help})"
        return f"Enter value for [bold]{argument.display_name}[/bold]"

    def prompt(self, argument: "CommandLineArgument", /) -> str:
        from rich.prompt import Prompt

        return Prompt.ask(self._label(argument), console=self.console)

    def prompt_secret(self, argument: "CommandLineArgument", /) -> str:
        from rich.prompt import Prompt

        return Prompt.ask(self._label(argument), console=self.console, password=True)
