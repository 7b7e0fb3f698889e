"""
Shared fixtures: a scripted process runner and scripted prompts.

No test touches a real wsl.exe, dism.exe or terminal.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pytest

from wsl_manager import AppConfig, CommandResult, Session


class FakeRunner:
    """Records every command and answers from prefix-matched rules.

    The most recently added matching rule wins. A rule with several results
    hands them out in order and then keeps repeating the last one. Commands
    without a rule succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.rules: list = []

    def on(self, *prefix: str, returncode: Optional[int] = 0, stdout: str = "",
           stderr: str = "", error: str = "") -> "FakeRunner":
        result = dict(returncode=returncode, stdout=stdout, stderr=stderr, error=error)
        self.rules.append((list(prefix), [result]))
        return self

    def on_sequence(self, *prefix: str, results: List[dict]) -> "FakeRunner":
        self.rules.append((list(prefix), list(results)))
        return self

    def __call__(self, args, capture_output=True, timeout=None) -> CommandResult:
        args = list(args)
        self.calls.append(args)
        for prefix, results in reversed(self.rules):
            if args[: len(prefix)] == prefix:
                scripted = results.pop(0) if len(results) > 1 else results[0]
                return CommandResult(
                    args,
                    scripted.get("returncode", 0),
                    stdout=scripted.get("stdout", ""),
                    stderr=scripted.get("stderr", ""),
                    error=scripted.get("error", ""),
                )
        return CommandResult(args, 0)

    def called(self, *prefix: str) -> List[List[str]]:
        return [call for call in self.calls if call[: len(prefix)] == list(prefix)]

    def index_of(self, *prefix: str) -> int:
        for i, call in enumerate(self.calls):
            if call[: len(prefix)] == list(prefix):
                return i
        return -1


class ScriptedAsk:
    """Answers prompts from a fixed list; running out is a test failure."""

    def __init__(self, answers: Optional[List[str]] = None) -> None:
        self.answers = list(answers or [])
        self.prompts: List[str] = []

    def __call__(self, message: str) -> str:
        self.prompts.append(message)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {message}")
        return self.answers.pop(0)


class ScriptedTimedAsk:
    def __init__(self, answer: Optional[str] = None) -> None:
        self.answer = answer
        self.calls: List[tuple] = []

    def __call__(self, message: str, timeout: float) -> Optional[str]:
        self.calls.append((message, timeout))
        return self.answer


class FakeDownloader:
    def __init__(self, fail: Optional[Exception] = None) -> None:
        self.fail = fail
        self.paths: List[Path] = []

    def __call__(self, url: str, destination: Path) -> None:
        self.paths.append(Path(destination))
        if self.fail is not None:
            raise self.fail
        Path(destination).write_bytes(b"MSI")


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def ask() -> ScriptedAsk:
    return ScriptedAsk()


@pytest.fixture
def timed_ask() -> ScriptedTimedAsk:
    return ScriptedTimedAsk()


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        log_file=tmp_path / "logs" / "wsl_manager.log",
        temp_dir=str(tmp_path),
        restart_countdown=2,
        restart_prompt_timeout=1,
    )


@pytest.fixture
def session(config, runner, ask, timed_ask, downloader) -> Session:
    return Session(
        config=config,
        runner=runner,
        ask=ask,
        timed_ask=timed_ask,
        sleep=lambda seconds: None,
        downloader=downloader,
        interactive=False,
    )


VERBOSE_LISTING = (
    "  NAME            STATE           VERSION\n"
    "* Ubuntu          Running         2\n"
    "  Debian          Stopped         1\n"
    "  kali-linux      Installing      2\n"
)

QUIET_LISTING = "Ubuntu\nDebian\nkali-linux\n"

ONLINE_LISTING = (
    "The following is a list of valid distributions that can be installed.\n"
    "Install using 'wsl.exe --install <Distro>'.\n"
    "\n"
    "NAME                            FRIENDLY NAME\n"
    "Debian                          Debian GNU/Linux\n"
    "kali-linux                      Kali Linux Rolling\n"
    "Ubuntu                          Ubuntu\n"
    "Ubuntu-22.04                    Ubuntu 22.04 LTS\n"
)

NO_DISTRIBUTIONS = (
    "Windows Subsystem for Linux has no installed distributions.\n"
    "You can resolve this by installing a distribution with the instructions below:\n"
    "\n"
    "Use 'wsl.exe --list --online' to list available distributions\n"
    "and 'wsl.exe --install <Distro>' to install.\n"
)
