import base64
import mimetypes
from pathlib import Path

DEFAULT_UPLOAD_MIME = "image/jpeg"
DEFAULT_GENERATED_MIME = "image/png"


def encode_image_file(path: str | Path) -> str:
    """Read an image from disk and return it as a ``data:`` URL."""
    target = Path(path).expanduser()
    mime, _ = mimetypes.guess_type(target.name)
    if not mime or not mime.startswith("image/"):
        raise ValueError(f"Not an image file: {target}")
    data = base64.b64encode(target.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{data}"


def split_data_url(url: str, default_mime: str = DEFAULT_UPLOAD_MIME) -> tuple[str, str]:
    """Return ``(mime_type, base64_payload)`` for a ``data:`` URL.

    A bare base64 payload without a header is returned with ``default_mime``.
    """
    if not url.startswith("data:") or "," not in url:
        return default_mime, url
    header, payload = url.split(",", 1)
    mime = header[len("data:"):].split(";", 1)[0]
    return mime or default_mime, payload


def inline_image_markdown(mime_type: str | None, data: str) -> str:
    return f"![Generated Image](data:{mime_type or DEFAULT_GENERATED_MIME};base64,{data})\n\n"
