# ============================================================================
# SHELL COMMAND LEXER
# ============================================================================
"""
Syntax highlighting for single shell commands as they appear in history files.

The lexer only colours what it sees; nothing here feeds back into counting.
"""

from __future__ import annotations

import re

from pygments.lexer import RegexLexer, bygroups, include
from pygments.token import (
    Comment,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
    Token,
    _TokenType,
)
from rich.style import Style
from rich.syntax import Syntax, SyntaxTheme
from rich.text import Text as RichText

# Custom token types so the theme can tell arguments apart from plain text
Name.Argument = Token.Name.Argument
Name.Variable.Magic = Token.Name.Variable.Magic


class CommandLexer(RegexLexer):
    """
    Lexer for one-line bash/zsh commands.
    ```python
    for token, value in CommandLexer().get_tokens("git commit -m 'wip'"):
        ...
    ```
    """

    name = "Shell command"
    aliases = ["shell-command"]
    filenames = []

    flags = re.MULTILINE

    tokens = {
        "_base": [
            (r"\\.", String.Escape),
            (r"'[^']*'?", String.Single),
            (r'"(\\\\|\\"|[^"])*"?', String.Double),
            (r"`[^`]*`?", String.Backtick),
            (r"\$\(", String.Interpol, "command_substitution"),
            (r"\$\{[^}]*\}?", Name.Variable.Magic),
            (r"\$[a-zA-Z0-9_@*#?$!-]+", Name.Variable),
        ],
        "_separators": [
            (r"\|\||&&|\|&?|;;?|&", Operator),
            (r"(<<<|<<-?|>>?|<&|>&|&>|<)[0-9-]*", Operator),
        ],
        "root": [
            (r"\s+", Text),
            (r"#.*$", Comment),
            include("_separators"),
            (r"[(){}\[\]]", Punctuation),
            # FOO=bar before the command name
            (r"([a-zA-Z_][a-zA-Z0-9_]*)(=)([^\s;&|]*)", bygroups(Name.Variable, Operator, String)),
            (r"\b(sudo|doas|exec|time|nohup|command|builtin|noglob|env)\b(?=\s)", Keyword),
            (
                r"\b(if|then|else|elif|fi|for|in|while|until|do|done|case|esac|function)\b",
                Keyword.Reserved,
            ),
            (
                r"\b(cd|echo|printf|pwd|export|unset|source|alias|exit|return|eval|set|type)\b",
                Name.Builtin,
                "arguments",
            ),
            include("_base"),
            (r"[^\s;&|()<>'\"`$\\]+", Name.Function, "arguments"),
        ],
        "arguments": [
            (r"\n", Text, "#pop"),
            (r"\s+", Text),
            (r"(?<=\s)#.*$", Comment, "#pop"),
            (r"(?=\|\||&&|[|;&)])", Text, "#pop"),
            (r"(<<<|<<-?|>>?|<&|>&|&>|<)[0-9-]*", Operator),
            (r"(?:--?|\+)[a-zA-Z0-9][\w-]*", Name.Attribute),
            (r"=", Operator),
            (r"\b[0-9]+\b", Number.Integer),
            include("_base"),
            (r"[^\s;&|()<>'\"`$\\=]+", Name.Argument),
            (r".", Text),
        ],
        "command_substitution": [
            (r"\)", String.Interpol, "#pop"),
            include("root"),
        ],
    }


# ============================================================================
# THEME
# ============================================================================


class CommandTheme(SyntaxTheme):
    """Token styles in the One Dark palette used by the console theme."""

    _RED = "#E06C75"
    _GREEN = "#98C379"
    _YELLOW = "#E5C07B"
    _BLUE = "#61AFEF"
    _PURPLE = "#C678DD"
    _CYAN = "#56B6C2"
    _GRAY = "#5C6370"

    default_style = Style()

    styles = {
        Name.Function: Style(color=_GREEN, bold=True),  # git, docker
        Name.Builtin: Style(color=_CYAN, italic=True),  # cd, export
        Name.Attribute: Style(color=_YELLOW),  # --long, -l
        Name.Argument: Style(),
        Name.Variable: Style(color=_PURPLE),
        Name.Variable.Magic: Style(color=_PURPLE, bold=True),  # ${HOME}
        Keyword: Style(color=_RED, bold=True),
        Operator: Style(color=_RED),
        Punctuation: Style(),
        Number: Style(color=_CYAN),
        String: Style(color=_BLUE),
        String.Escape: Style(color=_PURPLE),
        String.Interpol: Style(color=_PURPLE, bold=True),
        Comment: Style(color=_GRAY, italic=True),
    }

    @classmethod
    def get_style_for_token(cls, token_type: _TokenType) -> Style:
        """Walks up the token hierarchy until a style is found."""
        while token_type not in cls.styles:
            if token_type.parent is None:
                return cls.default_style
            token_type = token_type.parent
        return cls.styles[token_type]

    @classmethod
    def get_background_style(cls) -> Style:
        # Table cells keep the terminal's own background
        return Style()


_LEXER = CommandLexer(stripnl=False, ensurenl=False)
_THEME = CommandTheme()


def highlight(command: str) -> RichText:
    """Return `command` as a styled rich Text."""
    syntax = Syntax(command, _LEXER, theme=_THEME, word_wrap=True)
    return syntax.highlight(command)
