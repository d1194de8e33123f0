"""Context-aware sanitizers: display, markdown, template, file name, URL, path.

Every function here is total. Bad input yields an ``Err`` result, never
an exception. All transforms are encoding or allow-list based and run as
bounded loops to a fixed point, so a second pass over their own output is
a no-op.

Encoding leaves well-formed character references (``&amp;``, ``&#35;``,
``&#x2F;``) untouched and encodes every other special character. That is
what makes the encoders idempotent: their output consists only of
character references and characters outside the encoded set.
"""

from __future__ import annotations

import html
import ipaddress
import re
import socket
import unicodedata
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from bookkeeper.domain.types import ErrorKind
from bookkeeper.domain.validation import (
    BrandedStr,
    Err,
    Ok,
    SafeDisplayText,
    SafeFileName,
    SafeMarkdownText,
    SafeTemplateText,
    ValidatedFilePath,
    ValidatedURL,
    ValidationResult,
    _brand,
)

MAX_DISPLAY_LENGTH = 50_000
MAX_MARKDOWN_LENGTH = 100_000
MAX_FILE_NAME_LENGTH = 255
MAX_FILE_PATH_LENGTH = 260
MAX_URL_LENGTH = 2048

MAX_ENCODE_PASSES = 5
MAX_DECODE_PASSES = 10
MAX_FILE_NAME_PASSES = 10

FALLBACK_FILE_NAME = "untitled"

ALLOWED_URL_SCHEMES = frozenset({"http", "https", "ftp", "ftps"})

# Characters with special meaning in HTML, attribute, URL, or template contexts.
DISPLAY_SPECIAL_CHARS = "&<>\"'/\\`={}()[]|^~$%+:;?@#"
MARKDOWN_SPECIAL_CHARS = "&<>\"'`[]\\"
TEMPLATE_SPECIAL_CHARS = MARKDOWN_SPECIAL_CHARS + "{}"

_NAMED_ENTITIES = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;"}

_ENTITY_RE = re.compile(r"&(?:[A-Za-z][A-Za-z0-9]{1,31}|#[0-9]{1,7}|#[xX][0-9A-Fa-f]{1,6});")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_SEPARATOR_RE = re.compile(r"[/\\]")
_RESERVED_FILE_CHARS_RE = re.compile(r'[<>:"|?*]')
_DRIVE_RE = re.compile(r"^[A-Za-z]:")
_DOUBLE_SEPARATOR_RE = re.compile(r"[/\\]{2,}")
_IP_LIKE_RE = re.compile(r"^[0-9a-fx.]+$")

RESERVED_DEVICE_NAMES = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{i}" for i in range(1, 10)}
    | {f"LPT{i}" for i in range(1, 10)}
)

EXECUTABLE_EXTENSIONS = frozenset(
    {
        "app",
        "bat",
        "cmd",
        "com",
        "dll",
        "exe",
        "hta",
        "jar",
        "js",
        "lnk",
        "msi",
        "pif",
        "ps1",
        "reg",
        "scr",
        "sh",
        "vbs",
    }
)


# ---------------------------------------------------------------------------
# Entity encoding
# ---------------------------------------------------------------------------


def _build_table(chars: str) -> dict[int, str]:
    return {ord(ch): _NAMED_ENTITIES.get(ch, f"&#x{ord(ch):X};") for ch in chars}


_DISPLAY_TABLE = _build_table(DISPLAY_SPECIAL_CHARS)
_MARKDOWN_TABLE = _build_table(MARKDOWN_SPECIAL_CHARS)
_TEMPLATE_TABLE = _build_table(TEMPLATE_SPECIAL_CHARS)


def _encode_once(text: str, table: dict[int, str]) -> str:
    """Encode special characters outside existing character references."""
    parts: list[str] = []
    pos = 0
    for match in _ENTITY_RE.finditer(text):
        parts.append(text[pos : match.start()].translate(table))
        parts.append(match.group(0))
        pos = match.end()
    parts.append(text[pos:].translate(table))
    return "".join(parts)


def _visible_length(text: str) -> int:
    """Length with each character reference counted as one character.

    Encoding preserves this measure, so the length ceiling accepts a
    sanitizer's output whenever it accepted the input.
    """
    return len(_ENTITY_RE.sub("_", text))


def _encode_context(
    text: Any,
    table: dict[int, str],
    *,
    ceiling: int,
    brand: type[BrandedStr],
    context: str,
) -> ValidationResult[Any]:
    if not isinstance(text, str):
        return Err(ErrorKind.INVALID_INPUT, f"{context} input must be a string")

    current = unicodedata.normalize("NFC", text)
    if _visible_length(current) > ceiling:
        return Err(
            ErrorKind.INVALID_INPUT,
            f"{context} input exceeds {ceiling} characters",
        )

    for _ in range(MAX_ENCODE_PASSES):
        encoded = _encode_once(current, table)
        if encoded == current:
            break
        current = encoded
    return Ok(_brand(brand, current))


def sanitize_for_display(text: Any) -> ValidationResult[SafeDisplayText]:
    """Entity-encode *text* for display in any HTML-capable renderer."""
    return _encode_context(
        text,
        _DISPLAY_TABLE,
        ceiling=MAX_DISPLAY_LENGTH,
        brand=SafeDisplayText,
        context="display",
    )


def sanitize_for_markdown(text: Any) -> ValidationResult[SafeMarkdownText]:
    """Encode *text* so it renders as plain prose inside a markdown note.

    Angle brackets, quotes, backticks, square brackets, and backslashes are
    encoded; everything else is left readable.
    """
    return _encode_context(
        text,
        _MARKDOWN_TABLE,
        ceiling=MAX_MARKDOWN_LENGTH,
        brand=SafeMarkdownText,
        context="markdown",
    )


def sanitize_for_template(text: Any) -> ValidationResult[SafeTemplateText]:
    """Markdown encoding plus braces, for values substituted into templates."""
    return _encode_context(
        text,
        _TEMPLATE_TABLE,
        ceiling=MAX_MARKDOWN_LENGTH,
        brand=SafeTemplateText,
        context="template",
    )


def decode_entities(text: str) -> str:
    """Resolve character references repeatedly until nothing changes.

    ``html.unescape`` resolves each reference exactly once per pass
    (``&amp;lt;`` becomes ``&lt;``, not ``<``), so nested encodings are
    peeled one layer per iteration.
    """
    current = text
    for _ in range(MAX_DECODE_PASSES):
        decoded = html.unescape(current)
        if decoded == current:
            break
        current = decoded
    return current


# ---------------------------------------------------------------------------
# File names and paths
# ---------------------------------------------------------------------------


def _file_name_pass(name: str) -> str:
    name = name.replace("..", "")
    name = _SEPARATOR_RE.sub("-", name)
    name = _CONTROL_RE.sub("", name)
    name = _RESERVED_FILE_CHARS_RE.sub("-", name)
    name = name.strip().strip(".").strip()

    stem, dot, ext = name.rpartition(".")
    if dot and stem and ext.lower() in EXECUTABLE_EXTENSIONS:
        name = f"{stem}_{ext}"

    if name.split(".", 1)[0].upper() in RESERVED_DEVICE_NAMES:
        name = f"_{name}"

    return name[:MAX_FILE_NAME_LENGTH]


def sanitize_file_name(name: Any) -> ValidationResult[SafeFileName]:
    """Turn *name* into a single safe path component.

    Removal rules are re-applied until the name stops changing, so
    fragments such as ``.`` + control char + ``.`` cannot reassemble into
    ``..``. Falls back to ``untitled`` when nothing usable remains.
    """
    if not isinstance(name, str) or not name.strip():
        return Err(ErrorKind.INVALID_INPUT, "File name must be a non-empty string")

    current = unicodedata.normalize("NFC", name)
    for _ in range(MAX_FILE_NAME_PASSES):
        cleaned = _file_name_pass(current)
        if cleaned == current:
            break
        current = cleaned
    else:
        current = ""

    return Ok(_brand(SafeFileName, current or FALLBACK_FILE_NAME))


def validate_file_path(path: Any) -> ValidationResult[ValidatedFilePath]:
    """Accept *path* only if it is a plain relative path inside its root."""
    if not isinstance(path, str) or not path.strip():
        return Err(ErrorKind.INVALID_INPUT, "File path must be a non-empty string")
    if len(path) > MAX_FILE_PATH_LENGTH:
        return Err(
            ErrorKind.INVALID_INPUT,
            f"File path exceeds {MAX_FILE_PATH_LENGTH} characters",
        )
    if _CONTROL_RE.search(path):
        return Err(ErrorKind.INVALID_INPUT, "File path contains control characters")
    if path.startswith(("/", "\\")):
        return Err(ErrorKind.PATH_TRAVERSAL, "Absolute paths are not allowed")
    if _DRIVE_RE.match(path):
        return Err(ErrorKind.PATH_TRAVERSAL, "Drive-letter paths are not allowed")
    if _DOUBLE_SEPARATOR_RE.search(path):
        return Err(ErrorKind.PATH_TRAVERSAL, "Doubled path separators are not allowed")
    if any(segment.strip() == ".." for segment in _SEPARATOR_RE.split(path)):
        return Err(ErrorKind.PATH_TRAVERSAL, "Parent directory references are not allowed")
    return Ok(_brand(ValidatedFilePath, path))


# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------


def _parse_ip(host: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        if not _IP_LIKE_RE.match(host):
            return None
        # Legacy forms: 127.1, 0x7f000001, 2130706433
        try:
            return ipaddress.IPv4Address(socket.inet_aton(host))
        except OSError:
            return None

    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def _is_internal_host(host: str) -> bool:
    if host == "localhost" or host.endswith(".localhost"):
        return True
    address = _parse_ip(host)
    if address is None:
        return False
    return (
        address.is_loopback
        or address.is_private
        or address.is_link_local
        or address.is_reserved
        or address.is_unspecified
        or address.is_multicast
    )


def validate_url(url: Any) -> ValidationResult[ValidatedURL]:
    """Validate *url* against the scheme allow-list and public-host rules.

    Returns the URL with its scheme and host lowercased.
    """
    if not isinstance(url, str):
        return Err(ErrorKind.INVALID_INPUT, "URL must be a string")

    candidate = url.strip()
    if not candidate:
        return Err(ErrorKind.INVALID_INPUT, "URL must not be empty")
    if len(candidate) > MAX_URL_LENGTH:
        return Err(ErrorKind.INVALID_INPUT, f"URL exceeds {MAX_URL_LENGTH} characters")
    if _CONTROL_RE.search(candidate) or any(ch.isspace() for ch in candidate):
        return Err(ErrorKind.INVALID_INPUT, "URL contains whitespace or control characters")

    try:
        parts = urlsplit(candidate)
    except ValueError as exc:
        return Err(ErrorKind.INVALID_INPUT, f"Malformed URL: {exc}")

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_URL_SCHEMES:
        return Err(ErrorKind.SECURITY_VIOLATION, f"URL scheme {scheme!r} is not allowed")
    if parts.username is not None or parts.password is not None:
        return Err(ErrorKind.SECURITY_VIOLATION, "URLs with embedded credentials are not allowed")

    host = parts.hostname
    if not host:
        return Err(ErrorKind.INVALID_INPUT, "URL has no host")
    try:
        port = parts.port
    except ValueError:
        return Err(ErrorKind.INVALID_INPUT, "URL has an invalid port")

    if _is_internal_host(host):
        return Err(
            ErrorKind.SECURITY_VIOLATION,
            f"URL host {host!r} points at a loopback or private network",
        )

    netloc = f"[{host}]" if ":" in host else host
    if port is not None:
        netloc = f"{netloc}:{port}"
    normalized = urlunsplit((scheme, netloc, parts.path, parts.query, parts.fragment))
    return Ok(_brand(ValidatedURL, normalized))
