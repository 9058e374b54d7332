from typer.testing import CliRunner

from blockgen.cli.cli import app


def test_cli_smoke():
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "regenerate" in result.output
