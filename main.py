import sys

from rich.console import Console
from rich.pretty import pprint

from treecli import *
from treecli.faults import console

__styles__ = {
    "banner": "bold #22C55E",
}

app = App("basics", "treecli demonstration", "0.1.0", colorful=True)
app.string_flag("fmt", "Output format", "text")

hello = app.command("hello", "Say hello")
hello.string_flag("name", "Who to greet", "world")
hello.action(lambda scope: printj(scope, "Hello %s\n", string_flag(scope, "name")))

tree = app.command("tree", "Print the command tree")
tree.action(lambda scope: pprint(app.root.children, console=Console(file=stdout(scope))))

shell = app.command("shell", "Start an interactive shell")
shell.action(lambda scope: run_loop(app, scope, app.name))

app.default_command(hello)


if __name__ == '__main__':
    try:
        app.run(Scope(), *sys.argv[1:])
    except HelpRequested:
        pass
    except CommandException as exception:
        console.print(exception)
        sys.exit(1)
