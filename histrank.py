#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.10"
# dependencies = ["rich", "pygments", "rapidfuzz"]
# ///
"""
histrank.py - Which command did I use before to achieve that?

Reads the active shell's history file and reports the most- and least-used
commands, optionally narrowed down by an ignore-list and a search term.

Pipeline
--------
1. Resolve the history file from the shell identity ($SHELL, or --shell).
2. Read and decode the file (invalid UTF-8 is replaced, never fatal).
3. Normalize: strip shell metadata (zsh EXTENDED_HISTORY prefixes, bash
   HISTTIMEFORMAT stamps) and drop empty lines.
4. Drop lines starting with any --ignore prefix.
5. Keep lines matching the search words, exactly or fuzzily (--score).
6. Count identical commands and sort by count, descending.
7. Print the top and bottom slices.

Every stage takes a list of lines and returns a new one, so stages can be
tested and reordered independently.

Usage
-----
    histrank.py docker                    # fuzzy search for "docker"
    histrank.py --exact -c 10 git push    # exact substring "git push"
    histrank.py -i ls,cd -i git           # everything except ls/cd/git
"""

from __future__ import annotations

import argparse
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, TextIO

from rapidfuzz import fuzz
from rapidfuzz.distance import LCSseq
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from command_lexer import highlight

__version__ = "0.1.0"

# ============================================================================
# CONSTANTS & CONFIGURATION
# ============================================================================

CUSTOM_THEME = Theme({
    "title": "bold #C678DD",
    "count": "bold #61AFEF",
    "context": "#5C6370",
    "info": "#61AFEF",
    "success": "#98C379",
    "warning": "#E5C07B",
    "error": "#E06C75",
})

# Diagnostics go to stderr so results can be piped
console = Console(stderr=True, theme=CUSTOM_THEME)
out_console = Console(theme=CUSTOM_THEME)

ZSH_ENTRY_RE = re.compile(r"^: *\d+:\d+;")
BASH_TIMESTAMP_RE = re.compile(r"^#\d+$")

EXACT = "exact"
FUZZY = "fuzzy"


class Config:
    """Defaults for the ranking pipeline"""

    count: int = 5
    min_score: int = 40
    max_count: int = 255

    @property
    def history_files(self) -> dict[str, str]:
        """→ History file name (relative to $HOME) per supported shell"""
        return {
            "bash": ".bash_history",
            "zsh": ".zsh_history",
        }

    @property
    def supported_shells(self) -> list[str]:
        return sorted(self.history_files)


CONFIG = Config()

# ============================================================================
# ERRORS
# ============================================================================


class HistrankError(Exception):
    """Base class for fatal errors reported by the CLI."""


class UnsupportedShellError(HistrankError):
    def __init__(self, shell: str | None):
        self.shell = shell
        supported = ", ".join(f"`{s}`" for s in CONFIG.supported_shells)
        super().__init__(f"Unsupported shell {shell or '(unset)'!r}. This program supports: {supported}.")


class HistoryFileError(HistrankError):
    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Could not read history file '{path}': {reason}")


# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass
class CommandUsage:
    """A distinct command and how many times it occurs."""

    command: str
    count: int


@dataclass
class Ranking:
    """The most- and least-used slices of a ranked command table."""

    top: list[CommandUsage] = field(default_factory=list)
    bottom: list[CommandUsage] = field(default_factory=list)
    distinct: int = 0

    @property
    def size(self) -> int:
        return len(self.top)


# ============================================================================
# HISTORY FILE DISCOVERY
# ============================================================================


def resolve_shell(shell: str | None = None, env: Mapping[str, str] = os.environ) -> str:
    """→ Shell identity: explicit name, else the basename of $SHELL"""
    name = shell or env.get("SHELL") or ""
    name = Path(name).name
    if name not in CONFIG.history_files:
        raise UnsupportedShellError(shell or env.get("SHELL"))
    return name


def history_file(shell: str, env: Mapping[str, str] = os.environ) -> Path:
    """→ $HISTFILE if exported, else the shell's default file under $HOME"""
    if histfile := env.get("HISTFILE"):
        return Path(histfile).expanduser()
    home = Path(env["HOME"]) if env.get("HOME") else Path.home()
    return home / CONFIG.history_files[shell]


def guess_shell(path: Path, env: Mapping[str, str] = os.environ) -> str:
    """→ Shell for an explicit history file: by file name, then $SHELL, then bash"""
    for shell in CONFIG.supported_shells:
        if shell in path.name:
            return shell
    try:
        return resolve_shell(env=env)
    except UnsupportedShellError:
        return "bash"


def read_lines(path: Path) -> list[str]:
    """→ File I/O: Reads the history file, replacing undecodable bytes"""
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        raise HistoryFileError(path, "file not found") from None
    except OSError as e:
        raise HistoryFileError(path, e.strerror or str(e)) from e
    # Only "\n" ends an entry; form feeds and friends are part of the command
    lines = data.decode("utf-8", errors="replace").split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


# ============================================================================
# NORMALIZATION
# ============================================================================


def cleanup_zsh(lines: list[str]) -> list[str]:
    """→ Strips EXTENDED_HISTORY prefixes, folding multi-line entries into one"""
    commands: list[str] = []
    for line in lines:
        if ZSH_ENTRY_RE.match(line):
            commands.append(line.split(";", 1)[1])
        elif commands and commands[-1].endswith("\\"):
            # zsh writes embedded newlines as a trailing backslash
            commands[-1] = f"{commands[-1]}\n{line}"
        else:
            commands.append(line)
    return commands


def cleanup_bash(lines: list[str]) -> list[str]:
    """→ Drops HISTTIMEFORMAT timestamp comments"""
    return [line for line in lines if not BASH_TIMESTAMP_RE.match(line)]


CLEANUPS = {
    "bash": cleanup_bash,
    "zsh": cleanup_zsh,
}


def cleanup(lines: list[str], shell: str) -> list[str]:
    """→ Removes shell metadata and empty lines"""
    lines = CLEANUPS[shell](lines)
    return [line for line in lines if line.strip()]


# ============================================================================
# FILTERING
# ============================================================================


def filter_ignored(lines: list[str], ignore: Iterable[str]) -> list[str]:
    """→ Drops lines starting with any of the ignored prefixes"""
    prefixes = tuple(word for word in ignore if word)
    if not prefixes:
        return list(lines)
    return [line for line in lines if not line.startswith(prefixes)]


def fuzzy_score(line: str, query: str) -> int | None:
    """
    Score `query` against `line`, case-insensitive, 0-100.

    Every query character has to occur in `line` in order (the longest common
    subsequence is the whole query), otherwise it is no match and None is
    returned. Matches are scored with rapidfuzz's partial ratio: 100 for a
    substring, lower the more scattered the characters are.
    """
    if not query:
        return 100
    query, line = query.lower(), line.lower()
    if LCSseq.similarity(query, line) < len(query):
        return None
    return round(fuzz.partial_ratio(query, line))


def filter_exact(lines: list[str], search: list[str]) -> list[str]:
    query = " ".join(search)
    return [line for line in lines if query in line]


def filter_fuzzy(lines: list[str], search: list[str], min_score: int) -> list[str]:
    query = " ".join(search)
    kept = []
    for line in lines:
        score = fuzzy_score(line, query)
        if score is not None and score >= min_score:
            kept.append(line)
    return kept


def filter_searched(
    lines: list[str], search: list[str], min_score: int = CONFIG.min_score, method: str = FUZZY
) -> list[str]:
    """→ Keeps lines matching the search words, if any were given"""
    if not search:
        return list(lines)
    if method == EXACT:
        return filter_exact(lines, search)
    if method == FUZZY:
        return filter_fuzzy(lines, search, min_score)
    raise ValueError(f"Unknown search method: {method!r}")


# ============================================================================
# AGGREGATION & RANKING
# ============================================================================


def build_command_table(lines: Iterable[str]) -> list[CommandUsage]:
    """→ Counts identical commands, most used first (ties keep first-seen order)"""
    counts: dict[str, int] = {}
    for line in lines:
        counts[line] = counts.get(line, 0) + 1
    table = [CommandUsage(command, count) for command, count in counts.items()]
    table.sort(key=lambda usage: usage.count, reverse=True)
    return table


def rank(table: list[CommandUsage], count: int) -> Ranking:
    """
    Slice the `count` most and least used commands off a ranked table.

    Each slice is capped at half the table so the two never overlap. The
    bottom slice is ordered least used first.
    """
    size = max(0, min(len(table) // 2, count))
    if not size:
        return Ranking(distinct=len(table))
    return Ranking(
        top=table[:size],
        bottom=table[-size:][::-1],
        distinct=len(table),
    )


# ============================================================================
# OUTPUT
# ============================================================================


def render_table(usages: list[CommandUsage]) -> Table:
    """Render a slice of the ranking as a Rich table."""
    table = Table(box=box.SIMPLE_HEAD, show_header=True, header_style="bold")
    table.add_column("Uses", style="count", justify="right")
    table.add_column("Command", overflow="fold")

    for usage in usages:
        table.add_row(f"{usage.count:,}", highlight(usage.command))

    return table


def print_plain(ranking: Ranking, file: TextIO | None = None) -> None:
    file = file or sys.stdout
    print(f"Here are your {ranking.size} most used commands:\n", file=file)
    for usage in ranking.top:
        print(f"used {usage.count} times\t{usage.command}", file=file)

    print("\n", file=file)
    print(f"Here are your {ranking.size} least used commands:\n", file=file)
    for usage in ranking.bottom:
        print(f"used {usage.count} times\t{usage.command}", file=file)


def print_command_table(ranking: Ranking, plain: bool = False) -> None:
    """→ Writes the top and bottom slices to stdout"""
    if plain:
        print_plain(ranking)
        return

    if not ranking.distinct:
        out_console.print("[warning]No commands matched.[/warning]")
        return

    out_console.print(f"[title]Here are your {ranking.size} most used commands:[/title]")
    out_console.print(render_table(ranking.top))
    out_console.print(f"[title]Here are your {ranking.size} least used commands:[/title]")
    out_console.print(render_table(ranking.bottom))
    out_console.print(f"[context]{ranking.distinct:,} distinct commands[/context]")


def print_stats(stages: list[tuple[str, int]]) -> None:
    """→ Line counts after every pipeline stage, on stderr"""
    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Stage", style="info")
    table.add_column("Lines", justify="right")
    for stage, size in stages:
        table.add_row(stage, f"{size:,}")
    console.print(table)


# ============================================================================
# MAIN
# ============================================================================


def comma_list(value: str) -> list[str]:
    return [word for word in value.split(",") if word]


def count_arg(value: str) -> int:
    number = int(value)
    if not 0 <= number <= CONFIG.max_count:
        raise argparse.ArgumentTypeError(f"must be between 0 and {CONFIG.max_count}")
    return number


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="histrank",
        description="Which command I used before to achieve that? 🤔",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    ap.add_argument("search", nargs="*", help="Optional search for commands")
    ap.add_argument(
        "-c",
        "--count",
        type=count_arg,
        default=CONFIG.count,
        help="Number of commands to print (default: %(default)s)",
    )
    ap.add_argument("--exact", action="store_true", help="Use exact search match")
    ap.add_argument("--fuzzy", action="store_true", help="Use fuzzy search match (default)")
    ap.add_argument(
        "-i",
        "--ignore",
        type=comma_list,
        action="extend",
        default=[],
        metavar="CMDS",
        help="Comma-separated commands to ignore (prefix match, repeatable)",
    )
    ap.add_argument(
        "-s",
        "--score",
        type=int,
        default=CONFIG.min_score,
        help="Minimum score for fuzzy search, 0-100 (default: %(default)s)",
    )
    ap.add_argument("--shell", choices=CONFIG.supported_shells, help="Shell whose history to read (default: $SHELL)")
    ap.add_argument("-f", "--file", type=Path, help="History file to read (default: derived from the shell)")
    ap.add_argument("--plain", action="store_true", help="Plain text output without colors or tables")
    ap.add_argument("--stats", action="store_true", help="Print line counts per pipeline stage to stderr")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    method = EXACT if args.exact and not args.fuzzy else FUZZY

    try:
        if args.file and not args.shell:
            path = args.file.expanduser()
            shell = guess_shell(path)
        else:
            shell = resolve_shell(args.shell)
            path = args.file.expanduser() if args.file else history_file(shell)
        raw = read_lines(path)
    except HistrankError as e:
        console.print(f"[error]Error: {escape(str(e))}[/error]")
        return 1

    lines = cleanup(raw, shell)
    stages = [("read", len(raw)), ("cleanup", len(lines))]
    lines = filter_ignored(lines, args.ignore)
    stages.append(("ignore", len(lines)))
    lines = filter_searched(lines, args.search, args.score, method)
    stages.append((f"search ({method})", len(lines)))

    table = build_command_table(lines)
    stages.append(("distinct", len(table)))

    if args.stats:
        console.print(f"[context]{escape(str(path))} ({shell})[/context]")
        print_stats(stages)

    try:
        print_command_table(rank(table, args.count), plain=args.plain)
        sys.stdout.flush()
    except BrokenPipeError:
        # Downstream consumer closed early (e.g. piped to `head`)
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
    return 0


if __name__ == "__main__":
    sys.exit(main())
