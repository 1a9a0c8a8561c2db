"""
Terminal output for the asimetric command line.

Status lines, key/value lines, the per-frame value table and tqdm
progress bars, coloured with colorama. Errors go to stderr.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Sequence

from colorama import Fore, Style, init as colorama_init
from tqdm import tqdm

colorama_init(autoreset=True)


class Colors:
    """Styles used by the CLI."""

    TITLE = Fore.CYAN + Style.BRIGHT
    OK = Fore.GREEN + Style.BRIGHT
    WARN = Fore.YELLOW
    FAIL = Fore.RED + Style.BRIGHT
    LABEL = Fore.MAGENTA
    VALUE = Fore.YELLOW + Style.BRIGHT
    FILE = Fore.CYAN
    TABLE_HEAD = Fore.WHITE + Style.BRIGHT
    BAR = Fore.GREEN
    RESET = Style.RESET_ALL


class Symbols:
    """Status glyphs; ``use_ascii`` swaps in plain-ASCII ones."""

    OK = "✔"
    FAIL = "✘"
    WARN = "⚠"
    BULLET = "•"
    RULE = "─"

    @classmethod
    def use_ascii(cls) -> None:
        cls.OK = "[OK]"
        cls.FAIL = "[X]"
        cls.WARN = "[!]"
        cls.BULLET = "-"
        cls.RULE = "-"


def print_header(text: str, width: int = 64) -> None:
    """Print a title framed by two rules."""
    rule = Symbols.RULE * width
    print(f"\n{Colors.TITLE}{rule}\n {text}\n{rule}{Colors.RESET}")


def print_success(text: str) -> None:
    print(f"{Colors.OK}{Symbols.OK} {text}{Colors.RESET}")


def print_warning(text: str) -> None:
    print(f"{Colors.WARN}{Symbols.WARN} {text}{Colors.RESET}", file=sys.stderr)


def print_error(text: str) -> None:
    print(f"{Colors.FAIL}{Symbols.FAIL} {text}{Colors.RESET}", file=sys.stderr)


def print_info(text: str) -> None:
    print(f"{Symbols.BULLET} {text}")


def print_metric(name: str, value: str | int | float, unit: str = "") -> None:
    """Print ``name: value [unit]``."""
    suffix = f" {unit}" if unit else ""
    print(f"  {Colors.LABEL}{name}: {Colors.VALUE}{value}{Colors.RESET}{suffix}")


def print_path(label: str, path: str) -> None:
    print(f"  {Colors.LABEL}{label}: {Colors.FILE}{path}{Colors.RESET}")


def print_value_table(columns: Sequence[str], rows: Sequence[Sequence[float]], precision: int = 4) -> None:
    """
    Print one row per frame: the frame index followed by its values.

    Parameters
    ----------
    columns : sequence of str
        Value column names (the index column is added).
    rows : sequence of sequence of float
        Values for each frame, ``len(columns)`` per row.
    precision : int, default 4
        Decimal places.
    """
    width = max(12, precision + 8)
    head = f"{'frame':>6}  " + "  ".join(f"{c:>{width}}" for c in columns)
    print(f"\n{Colors.TABLE_HEAD}{head}{Colors.RESET}")
    print(Symbols.RULE * len(head))
    for idx, row in enumerate(rows):
        cells = "  ".join(f"{v:>{width}.{precision}f}" for v in row)
        print(f"{idx:>6}  {cells}")


@dataclass
class ProgressConfig:
    """tqdm settings shared by all bars."""

    bar_format: str = "{desc}: {percentage:3.0f}%|{bar}| {n_fmt}/{total_fmt} {unit} [{elapsed}<{remaining}]"
    ncols: int = 88
    colour: str = "green"
    leave: bool = False
    mininterval: float = 0.2


def create_progress_bar(
    total: int,
    desc: str,
    unit: str = "frame",
    config: ProgressConfig | None = None,
    disable: bool = False,
) -> tqdm:
    """
    Create a progress bar, usable as a context manager.

    Parameters
    ----------
    total : int
        Number of steps.
    desc : str
        Label shown left of the bar.
    unit : str, default "frame"
        Name of one step.
    config : ProgressConfig, optional
        Overrides the default styling.
    disable : bool, default False
        Return a silent bar.
    """
    config = config or ProgressConfig()
    return tqdm(
        total=total,
        desc=f"{Colors.BAR}{desc}{Colors.RESET}",
        unit=unit,
        bar_format=config.bar_format,
        ncols=config.ncols,
        colour=config.colour,
        leave=config.leave,
        mininterval=config.mininterval,
        disable=disable,
    )


def setup_terminal() -> None:
    """Use ASCII glyphs when stdout cannot encode the Unicode ones."""
    encoding = (getattr(sys.stdout, "encoding", None) or "").lower()
    if os.environ.get("TERM") == "dumb" or "utf" not in encoding:
        Symbols.use_ascii()
