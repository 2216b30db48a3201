"""Minimal multipart/form-data decoder working on the raw request body."""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

HEADER_SEPARATOR = b"\r\n\r\n"

_NAME_RE = re.compile(r'(?:^|[;\s])name="([^"]+)"', re.IGNORECASE)
_FILENAME_RE = re.compile(r'(?:^|[;\s])filename="([^"]+)"', re.IGNORECASE)
_BOUNDARY_RE = re.compile(r'boundary=(?:"([^"]+)"|([^;\s]+))', re.IGNORECASE)


@dataclass(frozen=True)
class RawPart:
    name: str
    filename: Optional[str]
    content: Union[bytes, str]

    @property
    def is_file(self) -> bool:
        return self.filename is not None


def boundary_from_content_type(content_type: str | None) -> Optional[str]:
    if not content_type or "multipart/form-data" not in content_type.lower():
        return None
    m = _BOUNDARY_RE.search(content_type)
    if not m:
        return None
    return m.group(1) or m.group(2)


def decode(buffer: bytes, boundary: str) -> List[RawPart]:
    """Split a multipart body into parts, in wire order.

    Parts whose header block is not terminated by a blank line are skipped, as are
    parts without a ``name``; a trailing part with no closing boundary is ignored.
    """
    parts: List[RawPart] = []
    marker = b"--" + boundary.encode("latin-1")
    start = 0

    while True:
        idx = buffer.find(marker, start)
        if idx == -1:
            break
        body_start = idx + len(marker)
        nxt = buffer.find(marker, body_start)
        if nxt == -1:
            break

        chunk = buffer[body_start:nxt]
        header_end = chunk.find(HEADER_SEPARATOR)
        if header_end != -1:
            headers = chunk[:header_end].decode("utf-8", errors="replace")
            content = chunk[header_end + len(HEADER_SEPARATOR):]
            if content.endswith(b"\r\n"):
                content = content[:-2]

            name_m = _NAME_RE.search(headers)
            file_m = _FILENAME_RE.search(headers)
            if name_m:
                filename = file_m.group(1) if file_m else None
                parts.append(
                    RawPart(
                        name=name_m.group(1),
                        filename=filename,
                        content=content if filename is not None else content.decode("utf-8", errors="replace"),
                    )
                )
        start = nxt

    return parts


def find_part(parts: Iterable[RawPart], names: Iterable[str], require_file: bool = False) -> Optional[RawPart]:
    wanted = set(names)
    for part in parts:
        if part.name in wanted and (part.is_file or not require_file):
            return part
    return None
