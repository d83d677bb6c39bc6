from textwrap import dedent
from typing import Annotated

import pytest

from argscaffold import Arg, ArgAction, DefinitionError, ErrorPanel, UnexpectedArgumentError, ValidationError, run
from argscaffold.types import UInt


class Flags:
    verbose: bool = False


def test_run_success(console):
    with console.capture() as capture:
        result = run(Flags, ["-verbose"], console=console)

    assert isinstance(result, ArgAction)
    assert result.args.verbose is True
    assert capture.get() == ""


def test_run_prints_panel(console):
    with console.capture() as capture, pytest.raises(UnexpectedArgumentError):
        run(Flags, ["-bogus"], console=console, exit_on_error=False)

    expected = dedent(
        """\
        ╭─ Error ────────────────────────────────────────────────────────────╮
        │ Unexpected argument "-bogus".                                      │
        ╰────────────────────────────────────────────────────────────────────╯
        """
    )
    assert capture.get() == expected


def test_run_validation_panel(console):
    class Cli:
        count: UInt = 0

    with console.capture() as capture, pytest.raises(ValidationError):
        run(Cli, ["-count", "-1"], console=console, exit_on_error=False)

    expected = dedent(
        """\
        ╭─ Error ────────────────────────────────────────────────────────────╮
        │ Invalid value "-1" for "count". Must be >= 0.                      │
        ╰────────────────────────────────────────────────────────────────────╯
        """
    )
    assert capture.get() == expected


def test_run_exit_on_error(console):
    with console.capture(), pytest.raises(SystemExit) as e:
        run(Flags, ["-bogus"], console=console)
    assert e.value.code == 1


def test_run_no_print(console):
    with console.capture() as capture, pytest.raises(UnexpectedArgumentError):
        run(Flags, ["-bogus"], console=console, print_error=False, exit_on_error=False)
    assert capture.get() == ""


def test_run_verbose(console):
    with console.capture() as capture, pytest.raises(UnexpectedArgumentError):
        run(Flags, ["-bogus"], console=console, exit_on_error=False, verbose=True)
    assert "UnexpectedArgumentError" in capture.get()


def test_run_developer_errors_propagate(console):
    class Cli:
        a: Annotated[str, Arg(position=0)] = ""
        b: Annotated[str, Arg(position=0)] = ""

    with console.capture() as capture, pytest.raises(DefinitionError):
        run(Cli, [], console=console)
    assert capture.get() == ""


def test_error_panel_custom_title(console):
    with console.capture() as capture:
        console.print(ErrorPanel("Something broke.", title="Oops"))
    assert capture.get().splitlines()[0].startswith("╭─ Oops ─")
