import io
from collections.abc import Sequence
from pathlib import Path

import pytest

from bifrost.cli import main
from bifrost.context import BuildContext
from bifrost.gateway.inprocess import InProcessGateway
from bifrost.models import ExecResult


def _hello(context: BuildContext, commands: Sequence[str]) -> ExecResult:
    return ExecResult(exit_code=0, stdout="hello world\n", stderr="")


class Cli:
    def __init__(self, home: Path, gateway: InProcessGateway) -> None:
        self.env = {"BIFROST_HOME": str(home)}
        self.gateway = gateway
        self.stdout = io.StringIO()
        self.stderr = io.StringIO()

    def __call__(self, *argv: str) -> int:
        self.stdout = io.StringIO()
        self.stderr = io.StringIO()
        return main(
            list(argv),
            env=self.env,
            gateway=self.gateway,
            stdout=self.stdout,
            stderr=self.stderr,
        )


@pytest.fixture
def cli(realm: Path, home: Path, monkeypatch: pytest.MonkeyPatch) -> Cli:
    monkeypatch.chdir(realm)
    return Cli(home, InProcessGateway(responder=_hello))


def test_init_writes_default_manifest(cli: Cli, realm: Path) -> None:
    assert cli("init") == 0

    assert cli.stdout.getvalue() == f"Initialized default Bifrost realm in {realm}\n"
    assert (realm / "Bifrost.toml").read_text(encoding="utf-8").startswith('[project]\nname = "project name"')


def test_init_on_existing_realm_with_options_is_refused(cli: Cli) -> None:
    assert cli("init") == 0
    assert cli("init") == 0
    assert "already initialized" in cli.stdout.getvalue()

    assert cli("init", "-w", "other") == 6
    assert "existing Bifrost realm" in cli.stderr.getvalue()


def test_commands_outside_a_realm_exit_with_config_code(cli: Cli) -> None:
    assert cli("load") == 2
    assert "bifrost init" in cli.stderr.getvalue()


def test_full_lifecycle(cli: Cli, realm: Path) -> None:
    size = (realm / "main.c").stat().st_size + len(
        '[project]\nname = "hello"\n\n[container]\nname = "docker"\n\n'
        '[workspace]\nname = "hello"\nignore = [".git"]\n\n'
        '[command]\ncmds = ["gcc main.c -o main", "./main"]\n'
    )

    assert cli("init", "-p", "hello", "-w", "hello", "-i", ".git", "-c", "gcc main.c -o main", "./main") == 0
    assert cli("load") == 0
    assert cli.stdout.getvalue() == f"bifrost: loaded {size} bytes from `hello`\n"

    assert cli("run") == 0
    assert cli.stdout.getvalue() == "stdout:\nhello world\n\nstderr:\n\n"

    assert cli("unload") == 0
    assert cli.stdout.getvalue() == "bifrost: successfully unloaded workspace realm `hello`\n"
    assert cli.gateway.calls["teardown"] == 1


def test_unload_before_load_exits_with_precondition_code(cli: Cli) -> None:
    cli("init")

    assert cli("unload") == 6
    assert "are you sure you have called `bifrost load`?" in cli.stderr.getvalue()


def test_run_with_placeholder_commands_is_a_config_error(cli: Cli) -> None:
    cli("init")
    cli("load")

    assert cli("run") == 2
    assert cli.gateway.calls["execute"] == 0

    assert cli("run", "-c", "make") == 0
    assert "stdout:" in cli.stdout.getvalue()


def test_load_selected_contents(cli: Cli, realm: Path) -> None:
    (realm / "src").mkdir()
    (realm / "src" / "lib.c").write_bytes(b"x" * 9)
    cli("init")

    assert cli("load", "src") == 0

    assert cli.stdout.getvalue() == "bifrost: loaded 9 bytes from `realm`\n"
    assert cli.gateway.contexts["realm"].member_names == ("src/lib.c",)


def test_show_lists_paths_with_all(cli: Cli) -> None:
    cli("init")

    assert cli("show") == 0
    assert cli.stdout.getvalue().startswith("bifrost-realm `realm`:\n")
    assert "  main.c" not in cli.stdout.getvalue()

    assert cli("show", "--all") == 0
    assert "  Bifrost.toml" in cli.stdout.getvalue()
    assert "  main.c" in cli.stdout.getvalue()
    assert "  .git/config" not in cli.stdout.getvalue()


def test_setup_and_teardown(cli: Cli, home: Path) -> None:
    assert cli("setup", "--no-build") == 0
    assert (home / ".bifrost" / "container" / "bifrost" / "Dockerfile").exists()

    assert cli("teardown") == 0
    assert not (home / ".bifrost").exists()
    assert cli("teardown") == 6
