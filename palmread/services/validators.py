from typing import Iterable, Optional

from fastapi import HTTPException

from ..utils.images import format_file_size


def normalize_content_type(ct: Optional[str]) -> str:
    ct = (ct or "").split(";")[0].strip().lower()
    return "image/jpeg" if ct == "image/jpg" else ct


def validate_upload(raw: bytes, content_type: Optional[str], max_bytes: int,
                    allowed_types: Iterable[str]) -> None:
    """
    Reject uploads before they reach the encoder.
    Empty -> 400, wrong type -> 415, over the size ceiling -> 413.
    """
    if not raw:
        raise HTTPException(status_code=400, detail="Empty file.")

    ct = normalize_content_type(content_type)
    allowed = set(allowed_types)
    if ct not in allowed:
        raise HTTPException(
            status_code=415,
            detail=f"Unsupported content type '{ct or 'unknown'}'. Allowed: {', '.join(sorted(allowed))}",
        )

    if len(raw) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File is {format_file_size(len(raw))}, the limit is {format_file_size(max_bytes)}.",
        )
