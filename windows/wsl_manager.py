#!/usr/bin/env python3
"""
WSL Distribution Manager
--------------------------------------------------

An interactive management utility for the Windows Subsystem for Linux with
a Nord-themed interface. It installs, lists, uninstalls and completely removes
WSL distributions, falling back to a manual feature/kernel setup when the
automated installer cannot complete.

Features:
  - Install distributions from the live online catalog (or a built-in list when offline)
  - Manual fallback: enable Windows features, install the WSL2 kernel update, pin WSL 2
  - View registered distributions with their state and WSL version
  - Readiness and GitHub SSH connectivity checks for a distribution
  - Uninstall a single distribution (typed DELETE confirmation)
  - Remove WSL completely (typed phrase confirmation)
  - Restart coordination with a bounded consent prompt

Usage:
  Run from an elevated (Administrator) terminal and navigate through the menu
  - Numbers 1-5: Select main menu options
  - --action/--distribution/--force skip the menu for a single operation

Note: This script must be run with administrator privileges.
Version: 1.0.0
"""

import asyncio
import atexit
import ctypes
import logging
import os
import platform
import re
import shlex
import shutil
import signal
import socket
import subprocess
import sys
import tempfile
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

# ----------------------------------------------------------------
# Dependency Check and Imports
# ----------------------------------------------------------------
try:
    import click
    import pyfiglet
    import requests
    from rich.console import Console
    from rich.text import Text
    from rich.table import Table
    from rich.panel import Panel
    from rich.progress import (
        Progress,
        SpinnerColumn,
        TextColumn,
        BarColumn,
        DownloadColumn,
        TimeRemainingColumn,
    )
    from rich.align import Align
    from rich.style import Style
    from rich.markup import escape
    from rich.logging import RichHandler
    from rich.traceback import install as install_rich_traceback
    from prompt_toolkit import PromptSession
    from prompt_toolkit import prompt as pt_prompt
    from prompt_toolkit.styles import Style as PtStyle
except ImportError:
    print("This script requires the 'rich', 'pyfiglet', 'prompt_toolkit', 'click' and 'requests' libraries.")
    print("Please install them using: pip install rich pyfiglet prompt_toolkit click requests")
    sys.exit(1)

# Install rich traceback handler for better error reporting
install_rich_traceback(show_locals=True)

# ----------------------------------------------------------------
# Configuration
# ----------------------------------------------------------------
HOSTNAME: str = socket.gethostname()
APP_NAME: str = "WSL Manager"
APP_SUBTITLE: str = "Windows Subsystem for Linux Distribution Manager"
VERSION: str = "1.0.0"

# UI Settings
TERM_WIDTH: int = min(shutil.get_terminal_size().columns, 100)


def default_log_file() -> Path:
    """Return the default log location (ProgramData on Windows, temp dir otherwise)."""
    base = os.environ.get("PROGRAMDATA") or tempfile.gettempdir()
    return Path(base) / "WslManager" / "wsl_manager.log"


@dataclass
class AppConfig:
    """Runtime configuration. Defaults can be overridden through the environment."""

    wsl_exe: str = "wsl.exe"
    dism_exe: str = "dism.exe"
    msiexec_exe: str = "msiexec.exe"
    shutdown_exe: str = "shutdown.exe"

    default_distribution: str = "Ubuntu"
    fallback_catalog: Tuple[Tuple[str, str], ...] = (
        ("Ubuntu", "Ubuntu (Latest LTS - Recommended)"),
        ("Ubuntu-24.04", "Ubuntu 24.04 LTS"),
        ("Ubuntu-22.04", "Ubuntu 22.04 LTS"),
        ("Ubuntu-20.04", "Ubuntu 20.04 LTS"),
        ("Debian", "Debian GNU/Linux"),
        ("kali-linux", "Kali Linux Rolling"),
        ("openSUSE-Tumbleweed", "openSUSE Tumbleweed"),
        ("OracleLinux_9_1", "Oracle Linux 9.1"),
        ("AlmaLinux-9", "AlmaLinux OS 9"),
    )

    # Windows optional features required by WSL 2
    required_features: Tuple[str, ...] = (
        "Microsoft-Windows-Subsystem-Linux",
        "VirtualMachinePlatform",
    )
    kernel_update_url: str = (
        "https://wslstorestorage.blob.core.windows.net/wslblob/wsl_update_x64.msi"
    )
    default_wsl_version: int = 2

    # Exit codes that mean success for tools with nonstandard conventions.
    # dism/msiexec report 3010 (and 1641) when a reboot is pending.
    feature_success_codes: Tuple[int, ...] = (0, 3010)
    msi_success_codes: Tuple[int, ...] = (0, 1641, 3010)
    # GitHub answers an authenticated `ssh -T` with exit status 1.
    ssh_probe_success_codes: Tuple[int, ...] = (0, 1)

    delete_phrase: str = "DELETE"
    remove_all_phrase: str = "REMOVE WSL COMPLETELY"
    ready_token: str = "wsl-manager-ready"

    command_timeout: int = 300  # seconds
    probe_timeout: int = 60  # seconds
    restart_prompt_timeout: int = 10  # seconds
    restart_countdown: int = 10  # seconds
    min_windows_build: int = 19041

    log_file: Path = field(default_factory=default_log_file)
    log_level: str = "INFO"
    temp_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build a config, applying WSL_MANAGER_* and LOG_LEVEL overrides."""
        config = cls()
        log_file = os.environ.get("WSL_MANAGER_LOG_FILE")
        if log_file:
            config.log_file = Path(log_file)
        config.log_level = os.environ.get("LOG_LEVEL", config.log_level).upper()
        config.kernel_update_url = os.environ.get(
            "WSL_MANAGER_KERNEL_URL", config.kernel_update_url
        )
        timeout = os.environ.get("WSL_MANAGER_RESTART_TIMEOUT")
        if timeout:
            try:
                config.restart_prompt_timeout = max(1, min(int(timeout), 60))
            except ValueError:
                logging.getLogger("wsl_manager").warning(
                    f"Ignoring invalid WSL_MANAGER_RESTART_TIMEOUT: {timeout!r}"
                )
        return config


# ----------------------------------------------------------------
# Nord-Themed Colors
# ----------------------------------------------------------------
class NordColors:
    """Nord color palette for consistent theming throughout the application."""

    # Polar Night (dark) shades
    POLAR_NIGHT_1 = "#2E3440"
    POLAR_NIGHT_4 = "#4C566A"

    # Snow Storm (light) shades
    SNOW_STORM_1 = "#D8DEE9"
    SNOW_STORM_2 = "#E5E9F0"

    # Frost (blues/cyans) shades
    FROST_1 = "#8FBCBB"
    FROST_2 = "#88C0D0"
    FROST_3 = "#81A1C1"
    FROST_4 = "#5E81AC"

    # Aurora (accent) shades
    RED = "#BF616A"
    ORANGE = "#D08770"
    YELLOW = "#EBCB8B"
    GREEN = "#A3BE8C"
    PURPLE = "#B48EAD"


# Create a Rich Console
console: Console = Console(theme=None, highlight=False)

PROMPT_STYLE = PtStyle.from_dict({"prompt": f"bold {NordColors.PURPLE}"})

logger = logging.getLogger("wsl_manager")


# ----------------------------------------------------------------
# Custom Exception Classes
# ----------------------------------------------------------------
class WslManagerError(Exception):
    """Base class for fatal errors that end the session with exit code 1."""


class PreconditionError(WslManagerError):
    pass


class FeatureEnableError(WslManagerError):
    pass


# ----------------------------------------------------------------
# Data Structures
# ----------------------------------------------------------------
class DistributionState(Enum):
    RUNNING = "Running"
    STOPPED = "Stopped"
    UNKNOWN = "Unknown"

    @classmethod
    def from_text(cls, state_str: str) -> "DistributionState":
        mapping = {
            "running": cls.RUNNING,
            "stopped": cls.STOPPED,
        }
        return mapping.get(state_str.strip().lower(), cls.UNKNOWN)


class InstallState(Enum):
    SUBSYSTEM_MISSING = "subsystem missing"
    NOT_REGISTERED = "not registered"
    SETUP_INCOMPLETE = "setup incomplete"
    READY = "ready"


class InstallMethod(Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    SKIPPED = "skipped"


class MenuState(Enum):
    MENU = "menu"
    VIEW = "view"
    UNINSTALL = "uninstall"
    INSTALL = "install"
    REMOVE_ALL = "remove-all"
    EXIT = "exit"


@dataclass
class CatalogEntry:
    key: str
    canonical_name: str
    friendly_name: str
    is_default: bool = False


@dataclass
class InstalledRecord:
    key: str
    name: str
    state: DistributionState = DistributionState.UNKNOWN
    version: int = 2
    is_default: bool = False


@dataclass
class InstallationAttempt:
    method: InstallMethod
    succeeded: bool
    restart_required: bool
    message: str = ""


@dataclass
class CommandResult:
    """
    Outcome of one external command.

    Attributes:
        args: The command line that was executed
        returncode: Process exit status, or None if it never ran to completion
        stdout: Decoded standard output ("" when output was not captured)
        stderr: Decoded standard error
        error: Launch/timeout failure description
    """

    args: List[str]
    returncode: Optional[int]
    stdout: str = ""
    stderr: str = ""
    error: str = ""

    def succeeded(self, accepted: Sequence[int] = (0,)) -> bool:
        return self.returncode is not None and self.returncode in accepted

    @property
    def ok(self) -> bool:
        return self.succeeded()

    @property
    def reason(self) -> str:
        if self.error:
            return self.error
        detail = normalize_line((self.stderr or self.stdout).strip())
        if detail:
            return f"exit code {self.returncode}: {detail}"
        return f"exit code {self.returncode}"


@dataclass
class QueryResult:
    """A parsed query: ok=True with no records means the subsystem reported nothing."""

    ok: bool
    records: List[Any] = field(default_factory=list)
    reason: str = ""


# ----------------------------------------------------------------
# Console and Logging Helpers
# ----------------------------------------------------------------
def create_header() -> Panel:
    """
    Create an ASCII art header with Nord styling.

    Returns:
        Panel containing the styled header
    """
    compact_fonts = ["slant", "small", "smslant", "mini", "digital"]

    ascii_art = ""
    for font_name in compact_fonts:
        try:
            fig = pyfiglet.Figlet(font=font_name, width=60)
            ascii_art = fig.renderText(APP_NAME)
            if ascii_art and ascii_art.strip():
                break
        except Exception:
            continue

    if not ascii_art.strip():
        ascii_art = APP_NAME

    ascii_lines = [line for line in ascii_art.split("\n") if line.strip()]

    colors = [
        NordColors.FROST_1,
        NordColors.FROST_2,
        NordColors.FROST_3,
        NordColors.FROST_2,
    ]

    styled_text = ""
    for i, line in enumerate(ascii_lines):
        color = colors[i % len(colors)]
        styled_text += f"[bold {color}]{escape(line)}[/]\n"

    tech_border = f"[{NordColors.FROST_3}]" + "━" * 30 + "[/]"
    styled_text = tech_border + "\n" + styled_text + tech_border

    return Panel(
        Text.from_markup(styled_text),
        border_style=Style(color=NordColors.FROST_1),
        padding=(1, 1),
        title=f"[bold {NordColors.SNOW_STORM_2}]v{VERSION}[/]",
        title_align="right",
        subtitle=f"[bold {NordColors.SNOW_STORM_1}]{APP_SUBTITLE}[/]",
        subtitle_align="center",
    )


def print_message(
    text: str, style: str = NordColors.FROST_2, prefix: str = "•"
) -> None:
    console.print(f"[{style}]{prefix} {text}[/{style}]")


def print_info(text: str) -> None:
    print_message(text, NordColors.FROST_3, "ℹ")


def print_success(text: str) -> None:
    print_message(text, NordColors.GREEN, "✓")


def print_warning(text: str) -> None:
    print_message(text, NordColors.YELLOW, "⚠")


def print_error(text: str) -> None:
    print_message(text, NordColors.RED, "✗")


def display_panel(
    message: str, style: str = NordColors.FROST_2, title: Optional[str] = None
) -> None:
    """
    Display a message in a styled panel.

    Args:
        message: The message to display
        style: The color style to use
        title: Optional panel title
    """
    panel = Panel(
        Text.from_markup(f"[bold {style}]{message}[/]"),
        border_style=Style(color=style),
        padding=(1, 2),
        title=f"[bold {style}]{title}[/]" if title else None,
    )
    console.print(panel)


def display_section_title(title: str) -> None:
    border = "═" * TERM_WIDTH
    console.print(f"\n[bold {NordColors.FROST_2}]{border}[/bold {NordColors.FROST_2}]")
    console.print(
        f"[bold {NordColors.FROST_2}]  {title.center(TERM_WIDTH - 4)}[/bold {NordColors.FROST_2}]"
    )
    console.print(f"[bold {NordColors.FROST_2}]{border}[/bold {NordColors.FROST_2}]\n")


def ask_input(message: str) -> str:
    """Prompt for a line of input. End-of-input reads as an empty answer."""
    try:
        return pt_prompt([("class:prompt", f"{message} ")], style=PROMPT_STYLE)
    except EOFError:
        return ""


def ask_with_timeout(message: str, timeout: float) -> Optional[str]:
    """
    Prompt for input, giving up after `timeout` seconds.

    Returns:
        The answer, or None if the prompt timed out or input ended
    """
    prompt_session: PromptSession = PromptSession()

    async def _ask() -> str:
        return await asyncio.wait_for(
            prompt_session.prompt_async(
                [("class:prompt", f"{message} ")], style=PROMPT_STYLE
            ),
            timeout=timeout,
        )

    try:
        return asyncio.run(_ask())
    except asyncio.TimeoutError:
        console.print()
        logger.info(f"Prompt timed out after {timeout}s")
        return None
    except EOFError:
        return None


def setup_logging(config: AppConfig, debug: bool = False) -> None:
    """Configure the wsl_manager logger with a rotating file and optional console output."""
    level = logging.DEBUG if debug else getattr(logging, config.log_level, logging.INFO)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    formatter = logging.Formatter(
        fmt="[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if debug:
        rich_handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            markup=False,
            show_time=True,
            show_path=False,
        )
        rich_handler.setLevel(logging.DEBUG)
        logger.addHandler(rich_handler)

    log_file = Path(config.log_file)
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        print_info(f"Logging to {log_file}")
    except OSError as e:
        print_warning(f"Could not set up log file: {e}")
        print_info("Continuing with console output only")


# ----------------------------------------------------------------
# Signal Handling and Cleanup
# ----------------------------------------------------------------
def cleanup() -> None:
    logger.info("Session finished")
    for handler in list(logger.handlers):
        handler.flush()


def signal_handler(sig: int, frame: Any) -> None:
    """
    Handle process termination signals gracefully.

    Args:
        sig: Signal number
        frame: Current stack frame
    """
    try:
        sig_name = signal.Signals(sig).name
    except ValueError:
        sig_name = f"signal {sig}"
    print_warning(f"Process interrupted by {sig_name}")
    logger.warning(f"Process interrupted by {sig_name}")
    sys.exit(128 + sig)


# ----------------------------------------------------------------
# Command Execution Helper
# ----------------------------------------------------------------
def decode_output(data: Optional[bytes]) -> str:
    """
    Decode raw process output.

    wsl.exe writes UTF-16LE, which shows up as NUL bytes between characters;
    everything else is treated as UTF-8.
    """
    if not data:
        return ""
    if b"\x00" in data:
        text = data.decode("utf-16-le", errors="ignore")
    else:
        text = data.decode("utf-8", errors="replace")
    return text.lstrip("\ufeff")


def run_command(
    command: Sequence[str],
    capture_output: bool = True,
    timeout: Optional[int] = 300,
) -> CommandResult:
    """
    Execute an external command without raising on failure.

    Args:
        command: List of command arguments
        capture_output: If False the command inherits the terminal (interactive installs)
        timeout: Timeout in seconds, or None to wait indefinitely

    Returns:
        CommandResult describing the outcome
    """
    args = list(command)
    cmd_str = " ".join(shlex.quote(arg) for arg in args)
    logger.debug(f"Executing: {cmd_str}")

    try:
        proc = subprocess.run(
            args,
            capture_output=capture_output,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError:
        logger.warning(f"Command not found: {args[0]}")
        return CommandResult(args, None, error=f"command not found: {args[0]}")
    except subprocess.TimeoutExpired:
        logger.warning(f"Command timed out after {timeout}s: {cmd_str}")
        return CommandResult(args, None, error=f"timed out after {timeout}s")
    except OSError as e:
        logger.warning(f"Could not launch {cmd_str}: {e}")
        return CommandResult(args, None, error=str(e))

    result = CommandResult(
        args,
        proc.returncode,
        stdout=decode_output(proc.stdout) if capture_output else "",
        stderr=decode_output(proc.stderr) if capture_output else "",
    )
    if result.stdout:
        logger.debug(f"Command output: {result.stdout.strip()}")
    if proc.returncode != 0:
        logger.debug(f"Command exited with {proc.returncode}: {cmd_str}")
    return result


def download_file(url: str, destination: Path, timeout: int = 60) -> None:
    """
    Stream `url` to `destination` with a progress bar.

    Raises:
        requests.RequestException: on connection or HTTP errors
        OSError: if the destination cannot be written
    """
    with requests.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        total_length = int(response.headers.get("content-length", 0))
        with open(destination, "wb") as out_file, Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(style=NordColors.FROST_4, complete_style=NordColors.FROST_2),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            DownloadColumn(),
            TimeRemainingColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Downloading", total=total_length or None)
            for chunk in response.iter_content(chunk_size=8192):
                if chunk:
                    out_file.write(chunk)
                    progress.update(task, advance=len(chunk))


# Sentinel: use AppConfig.command_timeout
CONFIG_TIMEOUT = -1


@dataclass
class Session:
    """
    State shared by one interactive session.

    Every collaborator the flows touch (process runner, prompts, sleep,
    downloader) lives here so the state machine can be driven without a
    terminal or a real wsl.exe.
    """

    config: AppConfig = field(default_factory=AppConfig)
    runner: Callable[..., CommandResult] = run_command
    ask: Callable[[str], str] = ask_input
    timed_ask: Callable[[str, float], Optional[str]] = ask_with_timeout
    sleep: Callable[[float], None] = time.sleep
    downloader: Callable[[str, Path], None] = download_file
    force: bool = False
    action: Optional[str] = None
    distribution: Optional[str] = None
    interactive: bool = True

    def run(
        self,
        command: Sequence[str],
        capture_output: bool = True,
        timeout: Optional[int] = CONFIG_TIMEOUT,
    ) -> CommandResult:
        if timeout == CONFIG_TIMEOUT:
            timeout = self.config.command_timeout
        return self.runner(list(command), capture_output=capture_output, timeout=timeout)

    def wsl(self, *args: str, **kwargs: Any) -> CommandResult:
        return self.run([self.config.wsl_exe, *args], **kwargs)


# ----------------------------------------------------------------
# Output Parser
# ----------------------------------------------------------------
DEFAULT_MARKER = "*"
MIN_LINE_LENGTH = 2
DEFAULT_VERSION = 2

HEADER_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^NAME STATE VERSION$",
        r"^NAME FRIENDLY NAME$",
        r"^The following is a list of valid distributions",
        r"^Install using ",
        r"^Windows Subsystem for Linux Distributions:?$",
        r"has no installed distributions",
    )
]
SEPARATOR_PATTERN = re.compile(r"^-{2,}( -{2,})*$")
NO_DISTRIBUTIONS_PATTERN = re.compile(r"has no installed distributions", re.IGNORECASE)
NON_PRINTABLE_PATTERN = re.compile(r"[^\x20-\x7E]")
WHITESPACE_PATTERN = re.compile(r"\s+")


@dataclass
class ParsedLine:
    fields: List[str]
    is_default: bool = False


def normalize_line(line: str) -> str:
    """Drop non-printable/non-ASCII characters and collapse whitespace."""
    line = line.replace("\t", " ")
    line = NON_PRINTABLE_PATTERN.sub("", line)
    return WHITESPACE_PATTERN.sub(" ", line).strip()


def is_header_line(line: str) -> bool:
    return any(pattern.search(line) for pattern in HEADER_PATTERNS)


def is_separator_line(line: str) -> bool:
    return bool(SEPARATOR_PATTERN.match(line))


def tokenize_line(raw: str) -> Optional[ParsedLine]:
    """
    Split one line of wsl.exe output into fields.

    Returns None for headers, separators, blank and too-short lines. A leading
    default marker is consumed and reported through `is_default`.
    """
    line = normalize_line(raw)
    if is_header_line(line) or is_separator_line(line):
        return None
    if not line or len(line) < MIN_LINE_LENGTH:
        return None

    tokens = line.split(" ")
    is_default = False
    if tokens[0] == DEFAULT_MARKER:
        is_default = True
        tokens = tokens[1:]
    if not tokens:
        return None
    return ParsedLine(tokens, is_default)


def parse_version(token: str) -> int:
    return 1 if token == "1" else DEFAULT_VERSION


def parse_installed_distributions(text: str) -> List[InstalledRecord]:
    """Parse `wsl --list --verbose` output."""
    records: List[InstalledRecord] = []
    for raw in text.splitlines():
        parsed = tokenize_line(raw)
        if parsed is None:
            continue
        fields = parsed.fields
        state = (
            DistributionState.from_text(fields[1])
            if len(fields) > 1
            else DistributionState.UNKNOWN
        )
        version = parse_version(fields[2]) if len(fields) > 2 else DEFAULT_VERSION
        records.append(
            InstalledRecord(
                key=str(len(records) + 1),
                name=fields[0],
                state=state,
                version=version,
                is_default=parsed.is_default,
            )
        )
    return records


def parse_distribution_names(text: str) -> List[str]:
    """Parse `wsl --list --quiet` output into distribution names."""
    names: List[str] = []
    for raw in text.splitlines():
        parsed = tokenize_line(raw)
        if parsed is not None:
            names.append(parsed.fields[0])
    return names


def parse_online_distributions(text: str) -> List[Tuple[str, str]]:
    """Parse `wsl --list --online` output into (canonical name, friendly name) pairs."""
    pairs: List[Tuple[str, str]] = []
    for raw in text.splitlines():
        parsed = tokenize_line(raw)
        if parsed is None:
            continue
        pairs.append((parsed.fields[0], " ".join(parsed.fields[1:])))
    return pairs


# ----------------------------------------------------------------
# Catalog Builder
# ----------------------------------------------------------------
def enumerate_catalog(
    pairs: Sequence[Tuple[str, str]], default_name: str
) -> List[CatalogEntry]:
    """
    Assign ordinal keys to (canonical, friendly) pairs.

    The default distribution always gets key "1"; the rest keep their
    encounter order. Duplicate canonical names keep the first occurrence.

    Args:
        pairs: Distribution pairs in source order
        default_name: Canonical name of the designated default distribution

    Returns:
        Catalog entries ordered by key
    """
    unique: Dict[str, str] = {}
    for canonical, friendly in pairs:
        if canonical not in unique:
            unique[canonical] = friendly

    entries: List[CatalogEntry] = []
    if default_name in unique:
        entries.append(
            CatalogEntry("1", default_name, unique[default_name], is_default=True)
        )
    for canonical, friendly in unique.items():
        if canonical == default_name:
            continue
        entries.append(CatalogEntry(str(len(entries) + 1), canonical, friendly))
    return entries


def query_online_distributions(session: Session) -> QueryResult:
    result = session.wsl("--list", "--online")
    if not result.ok:
        logger.warning(f"Online distribution query failed: {result.reason}")
        return QueryResult(ok=False, reason=result.reason)
    return QueryResult(ok=True, records=parse_online_distributions(result.stdout))


def build_catalog(session: Session) -> List[CatalogEntry]:
    """Build the install catalog from the online list, or the built-in list as a fallback."""
    query = query_online_distributions(session)
    if query.ok and query.records:
        pairs = query.records
    else:
        if query.ok:
            logger.info("Online query returned no distributions, using built-in catalog")
        print_warning("Online catalog unavailable, showing the built-in distribution list")
        pairs = list(session.config.fallback_catalog)
    return enumerate_catalog(pairs, session.config.default_distribution)


def select_catalog_entry(
    catalog: Sequence[CatalogEntry], choice: str
) -> Optional[CatalogEntry]:
    """Resolve a key or canonical name (case-insensitive). Empty input picks key "1"."""
    choice = choice.strip() or "1"
    for entry in catalog:
        if entry.key == choice or entry.canonical_name.casefold() == choice.casefold():
            return entry
    return None


# ----------------------------------------------------------------
# Installed-State Tracker
# ----------------------------------------------------------------
def is_subsystem_installed(session: Session) -> bool:
    return session.wsl("--status", timeout=session.config.probe_timeout).ok


def list_registered_names(session: Session) -> QueryResult:
    result = session.wsl("--list", "--quiet")
    if NO_DISTRIBUTIONS_PATTERN.search(normalize_line(result.stdout)):
        return QueryResult(ok=True)
    if not result.ok:
        logger.warning(f"Could not list registered distributions: {result.reason}")
        return QueryResult(ok=False, reason=result.reason)
    return QueryResult(ok=True, records=parse_distribution_names(result.stdout))


def list_installed_distributions(session: Session) -> QueryResult:
    """Query `wsl --list --verbose` into InstalledRecord entries."""
    result = session.wsl("--list", "--verbose")
    if NO_DISTRIBUTIONS_PATTERN.search(normalize_line(result.stdout)):
        return QueryResult(ok=True)
    if not result.ok:
        logger.warning(f"Could not list installed distributions: {result.reason}")
        return QueryResult(ok=False, reason=result.reason)
    return QueryResult(ok=True, records=parse_installed_distributions(result.stdout))


def is_distribution_registered(session: Session, name: str) -> bool:
    query = list_registered_names(session)
    return query.ok and any(
        registered.casefold() == name.casefold() for registered in query.records
    )


def is_setup_complete(session: Session, name: str) -> bool:
    token = session.config.ready_token
    result = session.wsl(
        "-d", name, "--", "echo", token, timeout=session.config.probe_timeout
    )
    return result.ok and token in result.stdout


def check_install_state(session: Session, name: str) -> InstallState:
    """
    Run the idempotency checks from cheapest to most specific.

    The first negative answer short-circuits and becomes the overall state.
    """
    if not is_subsystem_installed(session):
        return InstallState.SUBSYSTEM_MISSING
    if not is_distribution_registered(session, name):
        return InstallState.NOT_REGISTERED
    if not is_setup_complete(session, name):
        return InstallState.SETUP_INCOMPLETE
    return InstallState.READY


def probe_github_ssh(session: Session, name: str) -> bool:
    result = session.wsl(
        "-d",
        name,
        "--",
        "ssh",
        "-T",
        "-o",
        "BatchMode=yes",
        "-o",
        "StrictHostKeyChecking=accept-new",
        "-o",
        "ConnectTimeout=10",
        "git@github.com",
        timeout=session.config.probe_timeout,
    )
    return result.succeeded(session.config.ssh_probe_success_codes)


# ----------------------------------------------------------------
# Destructive Action Guard
# ----------------------------------------------------------------
def confirm_destructive(session: Session, phrase: str, warning: str) -> bool:
    """
    Require the operator to type `phrase` exactly before an irreversible action.

    Args:
        session: Active session
        phrase: The literal the operator must type (case-sensitive, no trimming)
        warning: Description of what will be destroyed

    Returns:
        True only on an exact match
    """
    display_panel(warning, style=NordColors.RED, title="Irreversible Action")
    response = session.ask(f"Type '{phrase}' to confirm:")
    if response == phrase:
        logger.info("Destructive action confirmed")
        return True
    print_info("Operation cancelled")
    logger.info("Destructive action cancelled at confirmation prompt")
    return False


# ----------------------------------------------------------------
# Installation Orchestrator
# ----------------------------------------------------------------
def unregister_distribution(session: Session, name: str) -> CommandResult:
    terminate = session.wsl("--terminate", name)
    if not terminate.ok:
        logger.debug(f"Terminate before unregister failed for {name}: {terminate.reason}")
    result = session.wsl("--unregister", name)
    if result.ok:
        logger.info(f"Unregistered distribution {name}")
    else:
        logger.warning(f"Failed to unregister {name}: {result.reason}")
    return result


def enable_windows_features(session: Session) -> None:
    """
    Enable the optional features WSL 2 depends on.

    Re-enabling an already enabled feature succeeds, so this is safe to repeat.

    Raises:
        FeatureEnableError: if DISM rejects a feature
    """
    config = session.config
    for feature in config.required_features:
        with console.status(
            f"[bold {NordColors.FROST_3}]Enabling {feature}...", spinner="dots"
        ):
            result = session.run(
                [
                    config.dism_exe,
                    "/online",
                    "/enable-feature",
                    f"/featurename:{feature}",
                    "/all",
                    "/norestart",
                ]
            )
        if not result.succeeded(config.feature_success_codes):
            logger.error(f"Failed to enable {feature}: {result.reason}")
            raise FeatureEnableError(f"Failed to enable Windows feature {feature}")
        print_success(f"Enabled {feature}")
        logger.info(f"Enabled Windows feature {feature} (exit {result.returncode})")


def install_kernel_update(session: Session) -> bool:
    """
    Download and silently install the WSL2 kernel update package.

    A failed download is not fatal: on current Windows builds the kernel
    ships with WSL itself. The temporary package is removed in every case.

    Returns:
        True if the package was installed
    """
    config = session.config
    fd, msi_name = tempfile.mkstemp(
        prefix="wsl_update_", suffix=".msi", dir=config.temp_dir
    )
    os.close(fd)
    msi_path = Path(msi_name)
    try:
        try:
            session.downloader(config.kernel_update_url, msi_path)
        except (requests.RequestException, OSError) as e:
            logger.info(f"Kernel update download failed ({e}); likely already installed")
            print_info("Kernel update not downloaded (likely already installed), continuing")
            return False

        with console.status(
            f"[bold {NordColors.FROST_3}]Installing WSL2 kernel update...", spinner="dots"
        ):
            result = session.run(
                [config.msiexec_exe, "/i", str(msi_path), "/quiet", "/norestart"]
            )
        if result.succeeded(config.msi_success_codes):
            print_success("WSL2 kernel update installed")
            logger.info("Installed WSL2 kernel update")
            return True
        print_warning(f"Kernel update installer failed: {escape(result.reason)}")
        logger.warning(f"Kernel update installer failed: {result.reason}")
        return False
    finally:
        if msi_path.exists():
            msi_path.unlink()


def set_default_version(session: Session) -> bool:
    version = str(session.config.default_wsl_version)
    result = session.wsl("--set-default-version", version)
    if result.ok:
        print_success(f"Default WSL version set to {version}")
        return True
    print_warning(f"Could not set default WSL version: {escape(result.reason)}")
    logger.warning(f"Could not set default WSL version: {result.reason}")
    return False


def run_manual_install(session: Session, name: str) -> InstallationAttempt:
    """Prepare the host by hand; the distribution itself installs after a restart."""
    print_warning("Automated install failed, switching to manual setup")
    logger.info(f"Starting manual setup for {name}")

    enable_windows_features(session)
    install_kernel_update(session)
    set_default_version(session)

    message = (
        f"Restart Windows, then run the install for {name} again "
        f"(wsl --install -d {name})."
    )
    return InstallationAttempt(
        method=InstallMethod.MANUAL,
        succeeded=False,
        restart_required=True,
        message=message,
    )


def install_distribution(session: Session, name: str) -> InstallationAttempt:
    """
    Install `name`, preferring `wsl --install` and degrading to manual setup.

    Args:
        session: Active session (honours session.force)
        name: Canonical distribution name

    Returns:
        The InstallationAttempt for the restart coordinator
    """
    state = check_install_state(session, name)
    logger.info(f"Install state for {name}: {state.value}")

    if state == InstallState.READY and not session.force:
        print_success(f"{name} is already installed and set up")
        return InstallationAttempt(
            InstallMethod.SKIPPED, succeeded=True, restart_required=False,
            message=f"{name} is already installed.",
        )

    if state == InstallState.SETUP_INCOMPLETE and not session.force:
        print_warning(f"{name} is registered but first-run setup has not completed")
        return InstallationAttempt(
            InstallMethod.SKIPPED, succeeded=False, restart_required=False,
            message=f"Launch it with 'wsl -d {name}' to finish setup, or reinstall with --force.",
        )

    if session.force and state in (InstallState.READY, InstallState.SETUP_INCOMPLETE):
        print_info(f"Force requested, unregistering existing {name}")
        result = unregister_distribution(session, name)
        if not result.ok:
            print_warning(f"Could not unregister {name}: {escape(result.reason)}")

    print_info(f"Installing {name} (follow the prompts to create your Linux user)")
    result = session.wsl("--install", "-d", name, capture_output=False, timeout=None)
    if result.ok:
        logger.info(f"Automated install of {name} succeeded")
        print_success(f"{name} installed")
        # Features enabled by this install only become active after a restart
        return InstallationAttempt(
            InstallMethod.AUTOMATIC, succeeded=True,
            restart_required=state == InstallState.SUBSYSTEM_MISSING,
            message=f"{name} installed.",
        )

    logger.warning(f"Automated install of {name} failed: {result.reason}")
    return run_manual_install(session, name)


def disable_windows_features(session: Session) -> bool:
    config = session.config
    all_disabled = True
    for feature in config.required_features:
        result = session.run(
            [
                config.dism_exe,
                "/online",
                "/disable-feature",
                f"/featurename:{feature}",
                "/norestart",
            ]
        )
        if result.succeeded(config.feature_success_codes):
            print_success(f"Disabled {feature}")
            logger.info(f"Disabled Windows feature {feature}")
        else:
            all_disabled = False
            print_warning(f"Failed to disable {feature}: {escape(result.reason)}")
            logger.warning(f"Failed to disable {feature}: {result.reason}")
    return all_disabled


def remove_all_distributions(session: Session, names: Sequence[str]) -> List[str]:
    """
    Tear down WSL: unregister every distribution, then disable the features.

    Returns:
        Names that could not be unregistered
    """
    session.wsl("--shutdown")
    failed: List[str] = []
    for name in names:
        result = unregister_distribution(session, name)
        if result.ok:
            print_success(f"Unregistered {name}")
        else:
            failed.append(name)
            print_warning(f"Failed to unregister {name}: {escape(result.reason)}")
    disable_windows_features(session)
    return failed


# ----------------------------------------------------------------
# Restart Coordinator
# ----------------------------------------------------------------
def schedule_restart(session: Session) -> bool:
    countdown = session.config.restart_countdown
    logger.info(f"Restarting in {countdown} seconds")
    with Progress(
        SpinnerColumn(spinner_name="dots", style=f"bold {NordColors.FROST_1}"),
        TextColumn(f"[bold {NordColors.GREEN}]Restarting in"),
        BarColumn(bar_width=30, style=NordColors.FROST_4, complete_style=NordColors.RED),
        TextColumn(f"[bold {NordColors.YELLOW}]{{task.remaining}}s"),
        console=console,
    ) as progress:
        task = progress.add_task("Restarting...", total=countdown)
        for _ in range(countdown):
            session.sleep(1)
            progress.update(task, advance=1)

    result = session.run([session.config.shutdown_exe, "/r", "/t", "0"])
    if result.ok:
        console.print(f"[bold {NordColors.GREEN}]Restarting now...[/]")
        return True
    print_error(f"Restart failed: {escape(result.reason)}")
    logger.error(f"Restart failed: {result.reason}")
    return False


def print_restart_instructions() -> None:
    print_info("Restart later to finish the changes:")
    console.print(f"  • [bold {NordColors.FROST_2}]Start menu → Power → Restart[/]")
    console.print(f"  • [bold {NordColors.FROST_2}]or run:[/] shutdown /r /t 0")


def coordinate_restart(
    session: Session, restart_required: bool, verify: bool = True
) -> bool:
    """
    Offer a restart after a mutating action.

    Args:
        session: Active session
        restart_required: What the action predicted
        verify: Re-probe WSL first; a working subsystem cancels the restart

    Returns:
        True if a restart was scheduled
    """
    if not restart_required:
        return False

    if verify and is_subsystem_installed(session):
        print_success("WSL is functional, no restart needed")
        logger.info("Restart skipped: subsystem probe succeeded")
        return False

    display_panel(
        "A system restart is required to complete the changes.",
        style=NordColors.YELLOW,
        title="Restart Required",
    )
    timeout = session.config.restart_prompt_timeout
    answer = session.timed_ask(f"Restart now? (y/N, {timeout}s):", timeout)
    if answer is not None and answer.strip().lower() in ("y", "yes"):
        return schedule_restart(session)

    logger.info("Restart deferred by operator")
    print_restart_instructions()
    return False


# ----------------------------------------------------------------
# Action State Machine
# ----------------------------------------------------------------
MENU_CHOICES: Dict[str, MenuState] = {
    "1": MenuState.INSTALL,
    "install": MenuState.INSTALL,
    "2": MenuState.UNINSTALL,
    "uninstall": MenuState.UNINSTALL,
    "3": MenuState.VIEW,
    "view": MenuState.VIEW,
    "4": MenuState.REMOVE_ALL,
    "remove-all": MenuState.REMOVE_ALL,
    "5": MenuState.EXIT,
    "q": MenuState.EXIT,
    "exit": MenuState.EXIT,
    "quit": MenuState.EXIT,
}

ACTION_STATES: Dict[str, MenuState] = {
    "install": MenuState.INSTALL,
    "uninstall": MenuState.UNINSTALL,
    "view": MenuState.VIEW,
    "remove-all": MenuState.REMOVE_ALL,
}


def resolve_choice(choice: str) -> Optional[MenuState]:
    return MENU_CHOICES.get(choice.strip().lower())


def select_installed_record(
    records: Sequence[InstalledRecord], choice: str
) -> Optional[InstalledRecord]:
    choice = choice.strip()
    for record in records:
        if record.key == choice or record.name.casefold() == choice.casefold():
            return record
    return None


def display_installed_table(records: Sequence[InstalledRecord]) -> None:
    table = Table(
        show_header=True,
        header_style=f"bold {NordColors.FROST_1}",
        border_style=NordColors.FROST_3,
        title=f"[bold {NordColors.FROST_2}]Installed Distributions[/]",
        title_justify="center",
        box=None,
        expand=True,
    )
    table.add_column("No.", style=f"bold {NordColors.FROST_4}", justify="right", width=5)
    table.add_column("Name", style=f"bold {NordColors.FROST_1}")
    table.add_column("State", justify="center")
    table.add_column("WSL", justify="center", style=NordColors.SNOW_STORM_1)
    table.add_column("Default", justify="center")

    for record in records:
        if record.state == DistributionState.RUNNING:
            state_text = Text("● RUNNING", style=f"bold {NordColors.GREEN}")
        elif record.state == DistributionState.STOPPED:
            state_text = Text("○ STOPPED", style=f"bold {NordColors.RED}")
        else:
            state_text = Text("? UNKNOWN", style=f"dim {NordColors.POLAR_NIGHT_4}")
        default_text = Text("★", style=NordColors.YELLOW) if record.is_default else Text("")
        table.add_row(record.key, record.name, state_text, str(record.version), default_text)

    console.print(Panel(table, border_style=Style(color=NordColors.FROST_3), padding=(1, 2)))


def display_catalog_table(catalog: Sequence[CatalogEntry]) -> None:
    table = Table(
        show_header=True,
        header_style=f"bold {NordColors.FROST_1}",
        border_style=NordColors.FROST_3,
        box=None,
    )
    table.add_column("No.", style=f"bold {NordColors.FROST_4}", justify="right", width=5)
    table.add_column("Name", style=f"bold {NordColors.FROST_1}")
    table.add_column("Description", style=NordColors.SNOW_STORM_1)
    for entry in catalog:
        description = escape(entry.friendly_name)
        if entry.is_default:
            description = f"{description} [{NordColors.YELLOW}](default)[/]"
        table.add_row(entry.key, entry.canonical_name, description)
    console.print(table)
    console.print()


def run_health_checks(session: Session, record: InstalledRecord) -> None:
    with console.status(
        f"[bold {NordColors.FROST_3}]Checking {record.name}...", spinner="dots"
    ):
        ready = is_setup_complete(session, record.name)
        ssh_ok = probe_github_ssh(session, record.name) if ready else False

    table = Table(show_header=False, box=None)
    table.add_column("Check", style=f"bold {NordColors.FROST_2}")
    table.add_column("Result")
    table.add_row(
        "First-run setup",
        f"[{NordColors.GREEN}]complete[/]" if ready else f"[{NordColors.RED}]incomplete[/]",
    )
    table.add_row(
        "GitHub SSH",
        f"[{NordColors.GREEN}]reachable[/]" if ssh_ok else f"[{NordColors.YELLOW}]unavailable[/]",
    )
    console.print(table)


def view_flow(session: Session) -> MenuState:
    """Show registered distributions; optionally run checks on one."""
    display_section_title("Installed Distributions")
    with console.status(
        f"[bold {NordColors.FROST_3}]Querying WSL...", spinner="dots"
    ):
        query = list_installed_distributions(session)

    if not query.ok:
        print_warning(f"Could not query distributions: {escape(query.reason)}")
        return MenuState.MENU
    if not query.records:
        display_panel("No distributions found", style=NordColors.FROST_3, title="WSL")
        return MenuState.MENU

    display_installed_table(query.records)
    current_time = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    console.print(
        Align.center(
            f"[{NordColors.SNOW_STORM_1}]Last updated: {current_time}[/] | "
            f"[{NordColors.SNOW_STORM_1}]Host: {HOSTNAME}[/]"
        )
    )

    choice = session.ask(
        "Enter a number to check a distribution, 'q' to quit, or Enter to return:"
    ).strip()
    if choice.lower() == "q":
        return MenuState.EXIT
    if not choice:
        return MenuState.MENU
    record = select_installed_record(query.records, choice)
    if record is None:
        print_warning("Invalid selection")
        return MenuState.MENU
    run_health_checks(session, record)
    return MenuState.MENU


def uninstall_flow(session: Session) -> MenuState:
    display_section_title("Uninstall Distribution")
    query = list_installed_distributions(session)
    if not query.ok:
        print_warning(f"Could not query distributions: {escape(query.reason)}")
        return MenuState.MENU
    if not query.records:
        print_info("No distributions found")
        return MenuState.MENU

    display_installed_table(query.records)

    if session.distribution:
        choice, session.distribution = session.distribution, None
    else:
        choice = session.ask(
            "Select a distribution to uninstall ('q' to quit, Enter to go back):"
        ).strip()
        if choice.lower() == "q":
            return MenuState.EXIT
        if not choice:
            return MenuState.MENU

    record = select_installed_record(query.records, choice)
    if record is None:
        print_warning(f"No installed distribution matches '{escape(choice)}'")
        return MenuState.MENU

    warning = (
        f"Uninstalling {record.name} permanently deletes its file system "
        "and everything stored inside it."
    )
    if not confirm_destructive(session, session.config.delete_phrase, warning):
        return MenuState.MENU

    with console.status(
        f"[bold {NordColors.FROST_3}]Unregistering {record.name}...", spinner="dots"
    ):
        result = unregister_distribution(session, record.name)
    if result.ok:
        print_success(f"{record.name} uninstalled")
    else:
        print_warning(f"Failed to uninstall {record.name}: {escape(result.reason)}")
    return MenuState.MENU


def install_flow(session: Session) -> MenuState:
    display_section_title("Install Distribution")

    name = session.distribution
    session.distribution = None
    if not name:
        with console.status(
            f"[bold {NordColors.FROST_3}]Fetching available distributions...",
            spinner="dots",
        ):
            catalog = build_catalog(session)
        display_catalog_table(catalog)
        choice = session.ask(
            "Select a distribution by number or name (Enter for 1, 'q' to cancel):"
        ).strip()
        if choice.lower() == "q":
            print_info("Operation cancelled")
            return MenuState.MENU
        entry = select_catalog_entry(catalog, choice)
        if entry is None:
            print_warning(f"No catalog entry matches '{escape(choice)}'")
            return MenuState.MENU
        name = entry.canonical_name

    attempt = install_distribution(session, name)
    if attempt.message:
        style = NordColors.GREEN if attempt.succeeded else NordColors.YELLOW
        display_panel(attempt.message, style=style, title=f"Install: {attempt.method.value}")
    coordinate_restart(session, attempt.restart_required)
    return MenuState.MENU


def remove_all_flow(session: Session) -> MenuState:
    """Unregister everything and disable WSL. Ends the session once carried out."""
    display_section_title("Remove WSL Completely")
    query = list_registered_names(session)
    if not query.ok:
        print_error(f"Could not enumerate distributions: {escape(query.reason)}")
        logger.error(f"Remove-all aborted, listing failed: {query.reason}")
        return MenuState.MENU
    names: List[str] = list(query.records)

    if names:
        console.print(f"[{NordColors.SNOW_STORM_1}]Distributions to be removed:[/]")
        for name in names:
            console.print(f"  • [bold {NordColors.RED}]{name}[/]")
    else:
        print_info("No registered distributions found")

    warning = (
        "This unregisters every WSL distribution, deleting all of their data, "
        "and disables the Windows Subsystem for Linux and Virtual Machine Platform."
    )
    if not confirm_destructive(session, session.config.remove_all_phrase, warning):
        return MenuState.MENU

    failed = remove_all_distributions(session, names)
    if failed:
        print_warning(f"Some distributions could not be removed: {', '.join(failed)}")
    else:
        print_success("WSL has been removed")
    logger.info(f"Removed WSL ({len(names) - len(failed)} distributions unregistered)")

    coordinate_restart(session, restart_required=True, verify=False)
    return MenuState.EXIT


def show_menu(session: Session) -> MenuState:
    if session.interactive:
        console.clear()
    console.print(create_header())
    current_time = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    console.print(
        Align.center(
            f"[{NordColors.SNOW_STORM_1}]Current Time: {current_time}[/] | "
            f"[{NordColors.SNOW_STORM_1}]Host: {HOSTNAME}[/]"
        )
    )

    display_section_title("Main Menu")
    console.print(f"[{NordColors.SNOW_STORM_1}]1. Install Distribution[/]")
    console.print(f"[{NordColors.SNOW_STORM_1}]2. Uninstall Distribution[/]")
    console.print(f"[{NordColors.SNOW_STORM_1}]3. View Installed Distributions[/]")
    console.print(f"[{NordColors.SNOW_STORM_1}]4. Remove WSL Completely[/]")
    console.print(f"[{NordColors.SNOW_STORM_1}]5. Exit[/]")
    console.print()

    choice = session.ask("Enter your choice (1-5):")
    state = resolve_choice(choice)
    if state is None:
        print_warning("Invalid choice. Please enter a number between 1 and 5.")
        return MenuState.MENU
    return state


FLOW_HANDLERS: Dict[MenuState, Callable[[Session], MenuState]] = {
    MenuState.VIEW: view_flow,
    MenuState.UNINSTALL: uninstall_flow,
    MenuState.INSTALL: install_flow,
    MenuState.REMOVE_ALL: remove_all_flow,
}


def pause(session: Session) -> None:
    if session.interactive:
        console.print()
        session.ask("Press Enter to continue...")


def run_state_machine(session: Session) -> int:
    """
    Drive the menu until EXIT.

    Returns:
        Process exit code
    """
    state = ACTION_STATES[session.action] if session.action else MenuState.MENU
    session.action = None

    while state is not MenuState.EXIT:
        if state is MenuState.MENU:
            state = show_menu(session)
            continue
        logger.info(f"Entering {state.value}")
        state = FLOW_HANDLERS[state](session)
        if state is MenuState.MENU:
            pause(session)
    return 0


# ----------------------------------------------------------------
# Preflight Checks
# ----------------------------------------------------------------
def is_elevated() -> bool:
    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())
    except (AttributeError, OSError):
        return False


def check_preconditions(config: AppConfig) -> None:
    """
    Verify the host can run WSL management at all.

    Raises:
        PreconditionError: on a non-Windows host, an old build or missing elevation
    """
    if platform.system() != "Windows":
        raise PreconditionError("This tool manages WSL and must run on Windows")

    build = sys.getwindowsversion().build
    if build < config.min_windows_build:
        raise PreconditionError(
            f"Windows build {build} is not supported "
            f"(WSL 2 needs build {config.min_windows_build} or later)"
        )
    print_success(f"Windows build {build}")

    if not is_elevated():
        raise PreconditionError(
            "This script must be run with administrator privileges "
            "(right-click the terminal and choose 'Run as administrator')"
        )
    print_success("Running with administrator privileges")


# ----------------------------------------------------------------
# Main Entry Point
# ----------------------------------------------------------------
@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--action",
    type=click.Choice(sorted(ACTION_STATES)),
    default=None,
    help="Run one action before showing the menu",
)
@click.option("--distribution", "-d", default=None, help="Distribution for install/uninstall")
@click.option("--force", is_flag=True, help="Reinstall even if the distribution is already installed")
@click.option("--debug", is_flag=True, help="Enable debug logging on the console")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Log file location",
)
@click.version_option(VERSION, prog_name=APP_NAME)
def main(
    action: Optional[str],
    distribution: Optional[str],
    force: bool,
    debug: bool,
    log_file: Optional[str],
) -> None:
    """WSL Distribution Manager - install, view and remove WSL distributions."""
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    atexit.register(cleanup)

    config = AppConfig.from_env()
    if log_file:
        config.log_file = Path(log_file)

    try:
        console.clear()
        console.print(create_header())
        console.print(f"Hostname: [bold {NordColors.FROST_3}]{HOSTNAME}[/]")
        console.print(
            f"Date: [bold {NordColors.FROST_3}]{datetime.now().strftime('%Y-%m-%d %H:%M:%S')}[/]"
        )
        console.print()

        setup_logging(config, debug)
        logger.info(f"{APP_NAME} v{VERSION} started")
        check_preconditions(config)

        session = Session(
            config=config, force=force, action=action, distribution=distribution
        )
        exit_code = run_state_machine(session)

    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user")
        logger.info("Program terminated by keyboard interrupt")
        sys.exit(130)

    except WslManagerError as e:
        print_error(str(e))
        logger.error(str(e))
        sys.exit(1)

    except Exception as e:
        print_error(f"Unexpected error: {e}")
        logger.exception("Unhandled exception")
        console.print_exception()
        sys.exit(1)

    display_panel(
        "Thank you for using the WSL Manager!",
        style=NordColors.FROST_2,
        title="Goodbye",
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
