from pathlib import PurePath

MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # 10MB
BINARY_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "application/pdf",
}
TEXT_MIME_TYPES = {"text/csv", "text/plain"}
_TEXT_EXTENSIONS = {".csv": "text/csv", ".txt": "text/plain"}

_MAGIC_SIGNATURES: list[tuple[bytes, str]] = [
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"%PDF-", "application/pdf"),
]

UNSUPPORTED_MESSAGE = "Unsupported file format. Please upload JPG, PNG, PDF, CSV, or TXT."


def sniff_binary_format(payload: bytes) -> str | None:
    head = payload[:16]
    for magic, mime in _MAGIC_SIGNATURES:
        if head.startswith(magic):
            return mime
    if len(head) >= 12 and head.startswith(b"RIFF") and head[8:12] == b"WEBP":
        return "image/webp"
    return None


def validate_upload_size(size: int) -> bool:
    return size <= MAX_UPLOAD_SIZE


def resolve_upload_mime(payload: bytes, filename: str | None, content_type: str | None) -> str:
    """Work out the media kind of an uploaded medical file.

    Binary uploads are identified by signature, so a mislabelled image still
    goes out as an image. Text uploads fall back to the file extension.
    Raises ValueError for anything else.
    """
    if not payload:
        raise ValueError("Uploaded file is empty.")
    if not validate_upload_size(len(payload)):
        raise ValueError(f"File too large. Maximum size is {MAX_UPLOAD_SIZE // (1024*1024)}MB.")

    sniffed = sniff_binary_format(payload)
    if sniffed:
        return sniffed

    declared = (content_type or "").split(";")[0].strip().lower()
    if declared in TEXT_MIME_TYPES:
        return declared
    suffix = PurePath(filename or "").suffix.lower()
    if suffix in _TEXT_EXTENSIONS:
        return _TEXT_EXTENSIONS[suffix]
    raise ValueError(UNSUPPORTED_MESSAGE)
