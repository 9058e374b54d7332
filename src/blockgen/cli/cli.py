"""CLI entrypoint: Typer app definition and command registration"""

import typer

from blockgen.cli.commands import (
    create_cmd,
    delete_cmd,
    init_cmd,
    meta_cmd,
    pending_cmd,
    recompile_cmd,
    regenerate_cmd,
    rename_cmd,
    save_cmd,
    stats_cmd,
)


app = typer.Typer(name="blockgen", no_args_is_help=True, help="Block file generation and SCSS recompilation")

app.command(name="init")(init_cmd)
app.command(name="create")(create_cmd)
app.command(name="meta")(meta_cmd)
app.command(name="save")(save_cmd)
app.command(name="rename")(rename_cmd)
app.command(name="delete")(delete_cmd)
app.command(name="regenerate")(regenerate_cmd)
app.command(name="recompile")(recompile_cmd)
app.command(name="pending")(pending_cmd)
app.command(name="stats")(stats_cmd)
