"""Tests for configuration, logging setup and the process runner."""

import logging
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from click.testing import CliRunner

import wsl_manager
from wsl_manager import (
    AppConfig,
    CommandResult,
    PreconditionError,
    check_preconditions,
    is_elevated,
    run_command,
    setup_logging,
)


@pytest.fixture
def clean_logger():
    yield wsl_manager.logger
    for handler in list(wsl_manager.logger.handlers):
        handler.close()
        wsl_manager.logger.removeHandler(handler)


class TestAppConfig:
    def test_defaults(self):
        config = AppConfig()
        assert config.default_distribution == "Ubuntu"
        assert config.fallback_catalog[0] == ("Ubuntu", "Ubuntu (Latest LTS - Recommended)")
        assert config.delete_phrase == "DELETE"
        assert config.remove_all_phrase == "REMOVE WSL COMPLETELY"
        assert config.restart_prompt_timeout <= 10
        assert config.ssh_probe_success_codes == (0, 1)

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("WSL_MANAGER_LOG_FILE", str(tmp_path / "custom.log"))
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("WSL_MANAGER_KERNEL_URL", "https://example.invalid/kernel.msi")
        monkeypatch.setenv("WSL_MANAGER_RESTART_TIMEOUT", "5")
        config = AppConfig.from_env()
        assert config.log_file == tmp_path / "custom.log"
        assert config.log_level == "DEBUG"
        assert config.kernel_update_url == "https://example.invalid/kernel.msi"
        assert config.restart_prompt_timeout == 5

    def test_invalid_restart_timeout_is_ignored(self, monkeypatch):
        monkeypatch.setenv("WSL_MANAGER_RESTART_TIMEOUT", "soon")
        assert AppConfig.from_env().restart_prompt_timeout == AppConfig().restart_prompt_timeout


class TestSetupLogging:
    def test_writes_to_rotating_log_file(self, config, clean_logger):
        setup_logging(config)
        clean_logger.info("hello from the test")
        for handler in clean_logger.handlers:
            handler.flush()
        assert "hello from the test" in Path(config.log_file).read_text(encoding="utf-8")

    def test_debug_adds_console_handler(self, config, clean_logger):
        setup_logging(config, debug=True)
        assert clean_logger.level == logging.DEBUG
        assert len(clean_logger.handlers) == 2

    def test_repeated_setup_does_not_stack_handlers(self, config, clean_logger):
        setup_logging(config)
        setup_logging(config)
        assert len(clean_logger.handlers) == 1


class TestRunCommand:
    def test_captures_output(self):
        result = run_command([sys.executable, "-c", "print('ready')"])
        assert result.ok
        assert result.stdout.strip() == "ready"

    def test_non_zero_exit_does_not_raise(self):
        result = run_command([sys.executable, "-c", "import sys; sys.exit(3)"])
        assert result.returncode == 3
        assert not result.ok
        assert result.reason == "exit code 3"

    def test_missing_executable(self):
        result = run_command(["definitely-not-a-real-wsl-binary"])
        assert result.returncode is None
        assert "not found" in result.reason

    def test_accepted_exit_codes(self):
        result = CommandResult(["ssh"], 1)
        assert not result.ok
        assert result.succeeded((0, 1))


def _windows_host(monkeypatch, build=22631, elevated=True):
    monkeypatch.setattr(wsl_manager.platform, "system", lambda: "Windows")
    monkeypatch.setattr(
        wsl_manager.sys,
        "getwindowsversion",
        lambda: SimpleNamespace(build=build),
        raising=False,
    )
    monkeypatch.setattr(wsl_manager, "is_elevated", lambda: elevated)


def _quiet_cli(monkeypatch):
    monkeypatch.setattr(wsl_manager.signal, "signal", lambda *args: None)
    monkeypatch.setattr(wsl_manager.atexit, "register", lambda *args: None)


class TestPreconditions:
    def test_non_windows_host_is_rejected(self, monkeypatch, config):
        monkeypatch.setattr(wsl_manager.platform, "system", lambda: "Linux")
        with pytest.raises(PreconditionError):
            check_preconditions(config)

    def test_old_windows_build_is_rejected(self, monkeypatch, config):
        _windows_host(monkeypatch, build=18363)
        with pytest.raises(PreconditionError, match="18363"):
            check_preconditions(config)

    def test_missing_elevation_is_rejected(self, monkeypatch, config):
        _windows_host(monkeypatch, elevated=False)
        with pytest.raises(PreconditionError, match="administrator"):
            check_preconditions(config)

    def test_supported_elevated_host_passes(self, monkeypatch, config):
        _windows_host(monkeypatch, build=config.min_windows_build)
        check_preconditions(config)

    def test_elevation_is_false_without_windows_shell(self, monkeypatch):
        monkeypatch.delattr(wsl_manager.ctypes, "windll", raising=False)
        assert is_elevated() is False

    def test_cli_exits_with_one_on_precondition_failure(self, monkeypatch, tmp_path, clean_logger):
        monkeypatch.setattr(wsl_manager.platform, "system", lambda: "Linux")
        _quiet_cli(monkeypatch)
        log_file = tmp_path / "cli.log"
        result = CliRunner().invoke(wsl_manager.main, ["--log-file", str(log_file)])
        assert result.exit_code == 1
        for handler in clean_logger.handlers:
            handler.flush()
        assert "must run on Windows" in log_file.read_text(encoding="utf-8")

    @pytest.mark.parametrize(
        "build,elevated",
        [(18363, True), (22631, False)],
        ids=["old-build", "not-elevated"],
    )
    def test_cli_exits_with_one_on_unsupported_host(
        self, monkeypatch, tmp_path, clean_logger, build, elevated
    ):
        _windows_host(monkeypatch, build=build, elevated=elevated)
        _quiet_cli(monkeypatch)
        result = CliRunner().invoke(
            wsl_manager.main, ["--log-file", str(tmp_path / "cli.log")]
        )
        assert result.exit_code == 1

    def test_cli_rejects_unknown_action(self):
        result = CliRunner().invoke(wsl_manager.main, ["--action", "explode"])
        assert result.exit_code == 2
