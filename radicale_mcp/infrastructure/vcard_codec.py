"""vCard 3.0 encoding and a permissive line-based decoder.

Only the handful of properties the contact tools expose are understood.
Parameters are stripped and anything else is skipped. Values are escaped
per RFC 2426 (backslash, newline, comma and semicolon).
"""

import re
from typing import Callable, Dict, List

from ..domain import Contact

_LINE = re.compile(r'^([^:;]+)(?:;[^:]*)?:(.*)$')
_NEWLINE = re.compile(r'\r\n|\r|\n')
_ESCAPED = re.compile(r'\\(.)')
_ESCAPES = {'\\': '\\\\', '\n': '\\n', ',': '\\,', ';': '\\;'}


def _escape(value: str) -> str:
    value = _NEWLINE.sub('\n', value)
    return ''.join(_ESCAPES.get(char, char) for char in value)


def _unescape(value: str) -> str:
    return _ESCAPED.sub(lambda m: '\n' if m.group(1) in 'nN' else m.group(1), value)


def _split_components(value: str) -> List[str]:
    """Split a structured value on unescaped ``;``, unescaping each part."""
    parts: List[str] = []
    current = ''
    chars = iter(value)
    for char in chars:
        if char == '\\':
            current += char + next(chars, '')
        elif char == ';':
            parts.append(_unescape(current))
            current = ''
        else:
            current += char
    parts.append(_unescape(current))
    return parts


def _unfold(text: str) -> List[str]:
    lines: List[str] = []
    for line in _NEWLINE.split(text):
        if line[:1] in (" ", "\t"):
            if lines:
                lines[-1] += line[1:]
        else:
            lines.append(line)
    return lines


def _set_name(contact: Contact, value: str) -> None:
    parts = _split_components(value)
    contact.last_name = parts[0]
    contact.first_name = parts[1] if len(parts) > 1 else ""


def _setter(field: str) -> Callable[[Contact, str], None]:
    def assign(contact: Contact, value: str) -> None:
        setattr(contact, field, _unescape(value))
    return assign


_SETTERS: Dict[str, Callable[[Contact, str], None]] = {
    'FN': _setter('full_name'),
    'N': _set_name,
    'EMAIL': _setter('email'),
    'TEL': _setter('phone'),
    'ORG': _setter('org'),
    'TITLE': _setter('title'),
    'NOTE': _setter('note'),
    'UID': _setter('uid'),
}


def has_vcard(text: str) -> bool:
    return any(line.strip().upper() == "BEGIN:VCARD" for line in _unfold(text))


def decode_contact(text: str) -> Contact:
    contact = Contact()
    for line in _unfold(text):
        match = _LINE.match(line)
        if not match:
            continue
        setter = _SETTERS.get(match.group(1).strip().upper())
        if setter:
            setter(contact, match.group(2))
    return contact


def encode_contact(contact: Contact) -> str:
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"UID:{_escape(contact.uid)}",
        f"FN:{_escape(contact.display_name)}",
        f"N:{_escape(contact.last_name or '')};{_escape(contact.first_name or '')};;;",
    ]
    for key, value in (
        ('EMAIL', contact.email),
        ('TEL', contact.phone),
        ('ORG', contact.org),
        ('TITLE', contact.title),
        ('NOTE', contact.note),
    ):
        if value:
            lines.append(f"{key}:{_escape(value)}")
    lines.append("END:VCARD")
    return "\r\n".join(lines)
