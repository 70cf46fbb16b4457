"""
treecli shell (interactive read-eval loop over an App).

Each line is split on whitespace and run against the app with the given
scope. "exit", "quit", end-of-file and Ctrl-C leave the loop. HelpRequested
is silent (the help text was already printed), other failures are printed
and the loop keeps going. Line editing and history come from readline.
"""
import logging
import readline

from rich.console import Console
from rich.text import Text

from .faults import CommandException, HelpRequested

logger = logging.getLogger(__name__)


def run_loop(app, scope, prompt, history_path=None, /, *, console=None):
    console = console if console is not None else Console(highlight=False)
    prompt = "[%s] " % prompt

    if history_path is not None:
        try:
            readline.read_history_file(history_path)
        except FileNotFoundError:
            pass
        except OSError as error:
            logger.warning("can not read shell history %s: %s", history_path, error)

    try:
        while True:
            try:
                line = console.input(prompt, markup=False, emoji=False)
            except (EOFError, KeyboardInterrupt):
                console.print()
                console.print("Bye")
                break

            if not (words := line.split()):
                continue
            if words[0] in ("exit", "quit"):
                console.print("Bye")
                break

            try:
                app.run(scope, *words)
            except HelpRequested:
                pass
            except CommandException as exception:
                console.print(exception)
            except Exception as exception:
                # The loop outlives failing actions.
                logger.debug("command %r failed", line, exc_info=True)
                console.print(Text(str(exception) or type(exception).__name__))
    finally:
        if history_path is not None:
            try:
                readline.write_history_file(history_path)
            except OSError as error:
                logger.warning("can not write shell history %s: %s", history_path, error)


__all__ = (
    "run_loop",
)
