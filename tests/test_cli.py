from __future__ import annotations

from pathlib import Path

import pytest

import gitrepopy.cli as cli
from gitrepopy import __version__
from gitrepopy.cli import Mode, Operation
from gitrepopy.log import FatalError


@pytest.mark.parametrize(
    ("argv", "expected"),
    [
        (
            ["demo", "https://example.com/demo.git"],
            Operation(mode=Mode.SETUP, name="demo", url="https://example.com/demo.git"),
        ),
        (
            ["demo", "-b", "dev", "https://example.com/demo.git", "-v"],
            Operation(mode=Mode.SETUP, name="demo", url="https://example.com/demo.git", branch="dev", verbose=True),
        ),
        (
            ["-bpr", "demo", "https://example.com/demo.git"],
            Operation(mode=Mode.SETUP, name="demo", url="https://example.com/demo.git"),
        ),
        (
            ["-fcr", "demo", "https://example.com/demo.git", "--branch", "main"],
            Operation(mode=Mode.FORCE_CREATE_RUN, name="demo", url="https://example.com/demo.git", branch="main"),
        ),
        (["-r", "demo"], Operation(mode=Mode.REMOVE, name="demo")),
        (["--update", "demo", "--verbose"], Operation(mode=Mode.UPDATE, name="demo", verbose=True)),
        (["-l"], Operation(mode=Mode.LIST)),
        (["--help"], Operation(mode=Mode.HELP)),
        (["-v", "-h", "-r"], Operation(mode=Mode.HELP, verbose=True)),
        (["--version"], Operation(mode=Mode.VERSION)),
    ],
)
def test_parse_operation(argv: list[str], expected: Operation) -> None:
    assert cli.parse_operation(argv) == expected


def test_parse_operation_collects_ignored_tokens() -> None:
    op = cli.parse_operation(["-l", "--bogus", "stray", "-b", "dev"])

    assert op.mode is Mode.LIST
    assert op.ignored == ("--bogus", "stray", "--branch", "dev")


def test_parse_operation_ignores_extra_positionals_for_setup() -> None:
    op = cli.parse_operation(["demo", "https://example.com/demo.git", "extra"])

    assert op.mode is Mode.SETUP
    assert op.ignored == ("extra",)


@pytest.mark.parametrize(
    ("argv", "message"),
    [
        ([], "No arguments provided"),
        (["-v"], "No operation specified"),
        (["demo"], "Missing repository URL"),
        (["-fcr", "demo"], "expected 2 arguments"),
        (["-r"], "expected one argument"),
        (["-r", "a", "-u", "b"], "not allowed with argument"),
        (["-l", "-bpr", "demo", "url"], "not allowed with argument"),
    ],
)
def test_parse_operation_usage_errors(argv: list[str], message: str) -> None:
    with pytest.raises(cli.UsageError, match=message):
        cli.parse_operation(argv)


class FakeLifecycle:
    instances: list["FakeLifecycle"] = []

    def __init__(self, cfg, *, platform, runner, git, log) -> None:
        self.cfg = cfg
        self.platform = platform
        self.runner = runner
        self.git = git
        self.log = log
        self.calls: list[tuple[str, object]] = []
        FakeLifecycle.instances.append(self)

    def setup(self, name: str, url: str, *, branch: str | None = None, force_wrapper: bool = False) -> None:
        self.calls.append(("setup", (name, url, branch, force_wrapper)))

    def update(self, name: str) -> None:
        self.calls.append(("update", name))

    def remove(self, name: str) -> bool:
        self.calls.append(("remove", name))
        return False

    def list_projects(self) -> list[object]:
        self.calls.append(("list", None))
        return []


@pytest.fixture
def fake_lifecycle(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> type[FakeLifecycle]:
    monkeypatch.setenv("TOOLS_BASE_DIR", str(tmp_path / "tools"))
    monkeypatch.setenv("TOOLS_BIN_DIR", str(tmp_path / "bin"))
    FakeLifecycle.instances = []
    monkeypatch.setattr(cli, "ProjectLifecycle", FakeLifecycle)
    return FakeLifecycle


@pytest.mark.parametrize(
    ("argv", "expected_call"),
    [
        (["demo", "https://example.com/demo.git"], ("setup", ("demo", "https://example.com/demo.git", None, False))),
        (["-fcr", "demo", "u", "-b", "dev"], ("setup", ("demo", "u", "dev", True))),
        (["-u", "demo"], ("update", "demo")),
        (["-r", "demo"], ("remove", "demo")),
        (["-l"], ("list", None)),
    ],
)
def test_main_dispatches_to_lifecycle(
    fake_lifecycle: type[FakeLifecycle], tmp_path: Path, argv: list[str], expected_call: tuple[str, object]
) -> None:
    rc = cli.main(argv)

    assert rc == 0
    (lc,) = fake_lifecycle.instances
    assert lc.calls == [expected_call]
    assert lc.cfg.base_dir == tmp_path / "tools"
    assert lc.cfg.bin_dir == tmp_path / "bin"
    assert lc.git.runner is lc.runner


def test_main_warns_about_ignored_arguments_when_verbose(
    fake_lifecycle: type[FakeLifecycle], capsys: pytest.CaptureFixture[str]
) -> None:
    rc = cli.main(["-l", "-v", "--frobnicate"])

    assert rc == 0
    assert "Ignoring unrecognized argument '--frobnicate'." in capsys.readouterr().err


def test_main_usage_error_exits_1(fake_lifecycle: type[FakeLifecycle], capsys: pytest.CaptureFixture[str]) -> None:
    rc = cli.main([])

    assert rc == 1
    err = capsys.readouterr().err
    assert "[ERROR]" in err
    assert "No arguments provided" in err
    assert "usage: git-repo-py" in err
    assert fake_lifecycle.instances == []


def test_main_help_shows_configuration(
    fake_lifecycle: type[FakeLifecycle], tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    rc = cli.main(["-h"])

    out = capsys.readouterr().out
    assert rc == 0
    assert "usage: git-repo-py" in out
    assert "--force-create-run" in out
    assert str(tmp_path / "tools") in out
    assert str(tmp_path / "bin") in out
    assert f"version {__version__}" in out
    assert fake_lifecycle.instances == []


def test_main_version(fake_lifecycle: type[FakeLifecycle], capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == f"git-repo-py {__version__}"


def test_main_fatal_error_exits_1(
    fake_lifecycle: type[FakeLifecycle], monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def fail(self: FakeLifecycle, name: str) -> None:
        raise FatalError("Project directory '/x' does not exist.")

    monkeypatch.setattr(FakeLifecycle, "update", fail)

    rc = cli.main(["-u", "demo"])

    assert rc == 1
    assert "Project directory '/x' does not exist." in capsys.readouterr().err


def test_main_keyboard_interrupt_exits_130(
    fake_lifecycle: type[FakeLifecycle], monkeypatch: pytest.MonkeyPatch
) -> None:
    def interrupt(self: FakeLifecycle) -> None:
        raise KeyboardInterrupt

    monkeypatch.setattr(FakeLifecycle, "list_projects", interrupt)

    assert cli.main(["-l"]) == cli.INTERRUPTED_EXIT_CODE == 130
