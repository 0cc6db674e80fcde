#!/usr/bin/env python3
"""
ABOUTME: Text and selector utility functions for live page editing
ABOUTME: Provides whitespace cleaning, CSS identifier escaping and text sanitization
"""

import re

_WHITESPACE_RE = re.compile(r'\s+')
_CSS_ESCAPE_RE = re.compile(r'\\(?:([0-9a-fA-F]{1,6})[ \t\n\r\f]?|(.))', re.DOTALL)


def clean_text(text: str) -> str:
    """Collapse runs of whitespace to single spaces and strip both ends."""
    return _WHITESPACE_RE.sub(' ', text or '').strip()


def css_escape(ident: str) -> str:
    """
    Escape a string for use as a CSS identifier (CSS.escape semantics).

    Examples:
        "main" -> "main"
        "1col" -> "\\31 col"
        "a.b:c" -> "a\\.b\\:c"

    Args:
        ident: Raw identifier, e.g. an element id

    Returns:
        Identifier safe to embed after '#' or '.' in a selector
    """
    ident = str(ident or '')
    out = []
    for i, ch in enumerate(ident):
        code = ord(ch)
        if code == 0:
            out.append('�')
        elif 0x01 <= code <= 0x1F or code == 0x7F:
            out.append(f'\\{code:x} ')
        elif i == 0 and ch.isdigit() and ch.isascii():
            out.append(f'\\{code:x} ')
        elif i == 1 and ch.isdigit() and ch.isascii() and ident[0] == '-':
            out.append(f'\\{code:x} ')
        elif i == 0 and ch == '-' and len(ident) == 1:
            out.append('\\-')
        elif code >= 0x80 or ch in '-_' or (ch.isascii() and ch.isalnum()):
            out.append(ch)
        else:
            out.append('\\' + ch)
    return ''.join(out)


def css_unescape(ident: str) -> str:
    """Reverse css_escape: resolve hex escapes and backslash-quoted characters."""
    def _replace(match):
        hex_digits, literal = match.group(1), match.group(2)
        if hex_digits is not None:
            code = int(hex_digits, 16)
            if code == 0 or code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
                return '�'
            return chr(code)
        return literal
    return _CSS_ESCAPE_RE.sub(_replace, ident or '')


def sanitize_text(text: str) -> str:
    """
    Remove control characters that lxml refuses to store in a tree.

    lxml only accepts XML-compatible strings for element text, so characters
    0x00-0x08, 0x0B, 0x0C and 0x0E-0x1F are dropped. Tab, LF and CR are kept.

    Args:
        text: Text that may contain control characters

    Returns:
        Sanitized text. Returns input unchanged if not a non-empty string.
    """
    if not text or not isinstance(text, str):
        return text
    illegal_chars = ''.join(
        chr(c) for c in range(0x20)
        if c not in (0x09, 0x0A, 0x0D)
    )
    return text.translate(str.maketrans('', '', illegal_chars))


def format_text_preview(text: str, max_len: int = 30) -> str:
    """
    Format text for log output: remove newlines and truncate.

    Args:
        text: Text to format
        max_len: Maximum length before truncation

    Returns:
        Clean, truncated text with "..." suffix if truncated
    """
    clean = clean_text(text)
    if len(clean) > max_len:
        return clean[:max_len] + "..."
    return clean
