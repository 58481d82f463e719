from typing import Annotated

from typer import Exit, Option, Typer

from wasmdev import __version__
from wasmdev.cli.plugin import plugin_app
from wasmdev.cli.serve import serve, stop, webapp
from wasmdev.utils import console

app = Typer(
    name="wasmdev",
    help="Serve WebAssembly builds to the browser during development",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"wasmdev {__version__}")
        raise Exit()


@app.callback()
def _main(
    version: Annotated[
        bool,
        Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit",
        ),
    ] = False,
) -> None:
    pass


app.command(name="serve")(serve)
app.command(name="webapp")(webapp)
app.command(name="stop")(stop)
app.add_typer(plugin_app)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
