"""Telegram message formatting utilities.

Provides the MarkdownV2 transcoder used for outbound text, the plain escaping
and stripping primitives, and small builders for formatted fragments.

``format_markdown_v2`` is span-aware and must not be combined with
``escape_markdown_v2``: escaping already transcoded text escapes it twice.
"""

import html
import re
from enum import StrEnum

from src.messaging.base import MessageFormatter


class ParseMode(StrEnum):
    """Telegram parse modes."""

    MARKDOWN = "Markdown"
    MARKDOWN_V2 = "MarkdownV2"
    HTML = "HTML"


# Characters that must be escaped outside formatting spans
OUTSIDE_SPECIAL_CHARS = frozenset("_*[]()~`>#+-=|{}.!")

# Characters escaped inside a matched span
INSIDE_SPECIAL_CHARS = frozenset("\\`)(>")

# Characters escaped inside the URL part of a link
LINK_URL_SPECIAL_CHARS = frozenset(")\\")

# Characters escaped by the code builders
CODE_SPECIAL_CHARS = frozenset("`\\")

# Span delimiters in match priority order (longer and more specific first)
SPAN_DELIMITERS = ("```", "`", "||", "__", "*", "_", "~")

ITALIC_DELIMITER = "_"
LINK_OPENER = "["

_LINK_PATTERN = re.compile(r"\[([^\]]*)\]\((?:\\.|[^)\\])*\)")
_STRIP_PATTERN = re.compile(r"\\(.)|[*_~|`]", re.DOTALL)


def _escape_chars(text: str, special_chars: frozenset[str]) -> str:
    return "".join(f"\\{char}" if char in special_chars else char for char in text)


def _find_closer(text: str, start: int, delimiter: str) -> int:
    """Find the next unescaped occurrence of a delimiter.

    :param text: Text being scanned.
    :param start: Index to start searching from.
    :param delimiter: Closing delimiter.
    :returns: Index of the closer, or -1 if there is none.
    """
    index = start
    while index < len(text):
        if text[index] == "\\":
            index += 2
            continue
        if text.startswith(delimiter, index):
            return index
        index += 1
    return -1


def _find_url_end(text: str, start: int) -> int:
    """Find the parenthesis closing a link URL, honouring nested pairs.

    :param text: Text being scanned.
    :param start: Index of the first URL character.
    :returns: Index of the closing parenthesis, or -1 if unbalanced.
    """
    depth = 1
    index = start
    while index < len(text):
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return -1


def _opens_span(text: str, index: int, delimiter: str) -> bool:
    if not text.startswith(delimiter, index):
        return False
    if delimiter != ITALIC_DELIMITER:
        return True
    # A lone underscore only; doubled ones belong to underline markers
    before = text[index - 1] if index > 0 else ""
    after = text[index + 1] if index + 1 < len(text) else ""
    return ITALIC_DELIMITER not in (before, after)


def _match_delimited(text: str, index: int, delimiter: str) -> tuple[str, int] | None:
    start = index + len(delimiter)
    end = _find_closer(text, start, delimiter)
    if end <= start:
        return None
    inner = _escape_chars(text[start:end], INSIDE_SPECIAL_CHARS)
    return f"{delimiter}{inner}{delimiter}", end + len(delimiter)


def _match_link(text: str, index: int) -> tuple[str, int] | None:
    label_start = index + 1
    label_end = _find_closer(text, label_start, "]")
    if label_end <= label_start or not text.startswith("(", label_end + 1):
        return None

    url_start = label_end + 2
    url_end = _find_url_end(text, url_start)
    if url_end <= url_start:
        return None

    label = _escape_chars(text[label_start:label_end], INSIDE_SPECIAL_CHARS)
    url = _escape_chars(text[url_start:url_end], LINK_URL_SPECIAL_CHARS)
    return f"[{label}]({url})", url_end + 1


def _match_span(text: str, index: int) -> tuple[str, int] | None:
    """Match a formatting span opening at the cursor.

    Only the highest-priority delimiter opening at the cursor is tried; if it
    has no closer the caller treats the character as ordinary text.

    :param text: Text being scanned.
    :param index: Cursor position.
    :returns: Tuple of (emitted_markup, next_cursor), or None when no span matches.
    """
    for delimiter in SPAN_DELIMITERS:
        if _opens_span(text, index, delimiter):
            return _match_delimited(text, index, delimiter)
    if text.startswith(LINK_OPENER, index):
        return _match_link(text, index)
    return None


def format_markdown_v2(text: str) -> str:
    """Convert loosely formatted text to Telegram MarkdownV2.

    Recognised spans (code blocks, inline code, spoilers, underline, bold,
    italic, strikethrough and links) keep their delimiters and only have
    ``\\ ` ) ( >`` escaped in their content. Every other reserved character
    is escaped with a backslash.

    :param text: Loosely formatted text.
    :returns: MarkdownV2 text.
    """
    parts: list[str] = []
    cursor = 0
    while cursor < len(text):
        match = _match_span(text, cursor)
        if match is None:
            char = text[cursor]
            parts.append(f"\\{char}" if char in OUTSIDE_SPECIAL_CHARS else char)
            cursor += 1
            continue
        emitted, cursor = match
        parts.append(emitted)
    return "".join(parts)


def escape_markdown_v2(text: str) -> str:
    """Escape every MarkdownV2 reserved character, ignoring formatting.

    Not idempotent: escaping twice doubles the backslashes.

    :param text: Plain text.
    :returns: Escaped text.
    """
    return _escape_chars(text, OUTSIDE_SPECIAL_CHARS)


def strip_markdown_v2(text: str) -> str:
    """Remove formatting delimiters and escape backslashes.

    Escaped characters are kept as literals and links are replaced by their text.

    :param text: MarkdownV2 text.
    :returns: Plain text.
    """
    text = _LINK_PATTERN.sub(r"\1", text)
    return _STRIP_PATTERN.sub(lambda match: match.group(1) or "", text)


def escape_html(text: str) -> str:
    """Escape ``&``, ``<`` and ``>`` for the HTML parse mode."""
    return html.escape(text, quote=False)


def bold(text: str) -> str:
    """Bold MarkdownV2 fragment."""
    return f"*{escape_markdown_v2(text)}*"


def italic(text: str) -> str:
    """Italic MarkdownV2 fragment."""
    return f"_{escape_markdown_v2(text)}_"


def underline(text: str) -> str:
    """Underlined MarkdownV2 fragment."""
    return f"__{escape_markdown_v2(text)}__"


def strikethrough(text: str) -> str:
    """Strikethrough MarkdownV2 fragment."""
    return f"~{escape_markdown_v2(text)}~"


def spoiler(text: str) -> str:
    """Spoiler MarkdownV2 fragment."""
    return f"||{escape_markdown_v2(text)}||"


def inline_code(text: str) -> str:
    """Inline code MarkdownV2 fragment."""
    return f"`{_escape_chars(text, CODE_SPECIAL_CHARS)}`"


def code_block(text: str, language: str = "") -> str:
    """Pre-formatted MarkdownV2 code block with an optional language."""
    return f"```{language}\n{_escape_chars(text, CODE_SPECIAL_CHARS)}\n```"


def link(text: str, url: str) -> str:
    """MarkdownV2 link; the URL only has ``)`` and ``\\`` escaped."""
    return f"[{escape_markdown_v2(text)}]({_escape_chars(url, LINK_URL_SPECIAL_CHARS)})"


def mention(text: str, user_id: int) -> str:
    """MarkdownV2 mention of a user by id."""
    return link(text, f"tg://user?id={user_id}")


def bold_html(text: str) -> str:
    return f"<b>{escape_html(text)}</b>"


def italic_html(text: str) -> str:
    return f"<i>{escape_html(text)}</i>"


def underline_html(text: str) -> str:
    return f"<u>{escape_html(text)}</u>"


def strikethrough_html(text: str) -> str:
    return f"<s>{escape_html(text)}</s>"


def spoiler_html(text: str) -> str:
    return f"<tg-spoiler>{escape_html(text)}</tg-spoiler>"


def code_html(text: str) -> str:
    return f"<code>{escape_html(text)}</code>"


def code_block_html(text: str, language: str = "") -> str:
    """HTML pre block, tagged with a language class when one is given."""
    if language:
        return f'<pre><code class="language-{language}">{escape_html(text)}</code></pre>'
    return f"<pre>{escape_html(text)}</pre>"


def link_html(text: str, url: str) -> str:
    return f'<a href="{html.escape(url)}">{escape_html(text)}</a>'


def mention_html(text: str, user_id: int) -> str:
    return link_html(text, f"tg://user?id={user_id}")


class TelegramFormatter(MessageFormatter):
    """Formatter for Telegram messages using MarkdownV2."""

    def format(self, text: str) -> tuple[str, str]:
        """Convert text to Telegram MarkdownV2 format.

        :param text: Loosely formatted text.
        :returns: Tuple of (markdownv2_text, "MarkdownV2").
        """
        return format_markdown_v2(text), ParseMode.MARKDOWN_V2.value


# Default formatter instance for convenience
_default_formatter: MessageFormatter = TelegramFormatter()


def get_formatter() -> MessageFormatter:
    """Get the default message formatter.

    :returns: The configured MessageFormatter instance.
    """
    return _default_formatter


def format_message(text: str) -> tuple[str, str]:
    """Convert text to platform-specific format using the default formatter.

    :param text: Loosely formatted text.
    :returns: Tuple of (formatted_text, parse_mode).
    """
    return _default_formatter.format(text)
