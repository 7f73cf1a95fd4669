"""Reading SQL and object list files in whatever encoding their byte order mark names."""

import codecs
from pathlib import Path

# UTF-32 LE starts with the UTF-16 LE mark, so it is checked first.
BYTE_ORDER_MARKS: list[tuple[bytes, str]] = [
    (codecs.BOM_UTF32_LE, "utf-32"),
    (codecs.BOM_UTF32_BE, "utf-32"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
]

DEFAULT_ENCODING = "utf-8-sig"


def detect_encoding(data: bytes) -> str:
    """Codec for ``data`` from its byte order mark, UTF-8 when there is none."""
    for mark, encoding in BYTE_ORDER_MARKS:
        if data.startswith(mark):
            return encoding
    return DEFAULT_ENCODING


def read_text(path: Path) -> str:
    """Read a text file, honouring a UTF-8, UTF-16 or UTF-32 byte order mark.

    Raises OSError when the file cannot be read and UnicodeDecodeError when
    its content does not match the detected encoding.
    """
    data = Path(path).read_bytes()
    return data.decode(detect_encoding(data))
