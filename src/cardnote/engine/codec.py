"""Chunked base64 encoding for image payloads."""

import base64

DEFAULT_CHUNK_SIZE = 0x8000


def encode(data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Base64-encode ``data`` in bounded chunks.

    The chunk size is rounded down to a multiple of 3 so that no chunk but
    the last produces padding, which keeps the joined output identical to
    a single-pass encoding.
    """
    step = max(3, chunk_size - chunk_size % 3)
    view = memoryview(data)
    parts = [
        base64.b64encode(view[offset:offset + step]).decode("ascii")
        for offset in range(0, len(view), step)
    ]
    return "".join(parts)
