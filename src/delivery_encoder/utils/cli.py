"""Shared CLI error handling."""

import functools
from collections.abc import Callable

import typer
from rich.console import Console

from delivery_encoder.errors import (
    EnvironmentSetupError,
    PreconditionError,
    ProbeError,
    SegmentsFailedError,
)

EXIT_ENVIRONMENT = 20
EXIT_PRECONDITION = 21
EXIT_PROBE = 22
EXIT_SEGMENT_FAILURE = 23
EXIT_USER_ERROR = 50
EXIT_INTERRUPT = 130

stderr_console = Console(stderr=True)


def cli_error_handler(func: Callable) -> Callable:
    """Wrap a CLI command to catch common exceptions with consistent exit codes.

    Pipeline errors map to their own codes; anything else unexpected exits with
    EXIT_USER_ERROR.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (typer.Exit, SystemExit):
            raise
        except KeyboardInterrupt:
            stderr_console.print("\n[bold yellow]Interrupted by user[/bold yellow]")
            raise typer.Exit(code=EXIT_INTERRUPT)
        except EnvironmentSetupError as e:
            stderr_console.print(f"[bold red]Environment error:[/bold red] {e}")
            raise typer.Exit(code=EXIT_ENVIRONMENT)
        except PreconditionError as e:
            stderr_console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=EXIT_PRECONDITION)
        except ProbeError as e:
            stderr_console.print(f"[bold red]Probe failed:[/bold red] {e}")
            raise typer.Exit(code=EXIT_PROBE)
        except SegmentsFailedError as e:
            stderr_console.print(f"[bold red]Failed:[/bold red] {e}")
            raise typer.Exit(code=EXIT_SEGMENT_FAILURE)
        except (FileNotFoundError, FileExistsError, ValueError, RuntimeError) as e:
            stderr_console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=EXIT_USER_ERROR)
        except Exception as e:
            stderr_console.print(f"[bold red]Unexpected error:[/bold red] {e}")
            raise typer.Exit(code=EXIT_USER_ERROR)

    return wrapper
