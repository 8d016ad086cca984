# palmread/routes/resize.py
import asyncio
import threading
from typing import Optional

from fastapi import APIRouter, File, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from ..config import settings
from ..errors import BudgetUnreachable, CompressionAborted, DecodeError, EncodeError
from ..schemas import ResizeResponse
from ..services.encoder import CompressionResult, SizeBudgetEncoder
from ..services.validators import normalize_content_type, validate_upload
from ..utils.logger import log_compression, log_error

router = APIRouter(prefix="/resize", tags=["resize"])

DISCONNECT_POLL_SECONDS = 0.1


async def _watch_disconnect(request: Request, cancel: threading.Event) -> None:
    while not cancel.is_set():
        if await request.is_disconnected():
            cancel.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


async def _compress_upload(
    request: Request,
    file: UploadFile,
    raw_byte_limit: Optional[int],
    encoded_byte_limit: Optional[int],
) -> CompressionResult:
    """
    Read the upload, gate it, then run the size-budget encoder in the threadpool.
    Query overrides replace the configured budget entirely; a single override
    means only that limit applies.
    """
    try:
        raw = await file.read()
        content_type = normalize_content_type(file.content_type)
    finally:
        await file.close()

    validate_upload(raw, content_type, settings.MAX_UPLOAD_BYTES, settings.ALLOWED_CONTENT_TYPES)

    encoder = SizeBudgetEncoder(settings.budget(raw_byte_limit, encoded_byte_limit), settings.plan())
    cancel = threading.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel))
    try:
        result = await run_in_threadpool(encoder.compress_detailed, raw, cancel)
    except DecodeError as e:
        await log_error(file.filename, str(e), "decode")
        raise HTTPException(status_code=400, detail=str(e))
    except BudgetUnreachable as e:
        await log_error(file.filename, str(e), "budget", {"attempts": len(e.history)})
        raise HTTPException(status_code=422, detail=str(e))
    except EncodeError as e:
        await log_error(file.filename, str(e), "encode")
        raise HTTPException(status_code=500, detail=str(e))
    except CompressionAborted as e:
        await log_error(file.filename, str(e), "aborted")
        raise HTTPException(status_code=499, detail="Client closed request")
    except Exception as e:
        await log_error(file.filename, str(e), "resize")
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        watcher.cancel()

    await log_compression(file.filename, content_type, len(raw), {
        "width": result.width,
        "height": result.height,
        "quality": result.quality,
        "attempts": result.attempts,
        "bytes": result.size,
        "encoded_bytes": result.encoded_size,
    })
    return result


@router.post("", response_class=Response)
async def resize_image(
    request: Request,
    file: UploadFile = File(...),
    raw_byte_limit: Optional[int] = Query(None, gt=0, description="Override: max JPEG bytes"),
    encoded_byte_limit: Optional[int] = Query(None, gt=0, description="Override: max base64 bytes"),
):
    result = await _compress_upload(request, file, raw_byte_limit, encoded_byte_limit)
    return Response(
        content=result.data,
        media_type="image/jpeg",
        headers={
            "X-Image-Width": str(result.width),
            "X-Image-Height": str(result.height),
            "X-Image-Quality": str(result.quality),
            "X-Compress-Attempts": str(result.attempts),
        },
    )


@router.post("/base64", response_model=ResizeResponse)
async def resize_image_base64(
    request: Request,
    file: UploadFile = File(...),
    raw_byte_limit: Optional[int] = Query(None, gt=0, description="Override: max JPEG bytes"),
    encoded_byte_limit: Optional[int] = Query(None, gt=0, description="Override: max base64 bytes"),
):
    result = await _compress_upload(request, file, raw_byte_limit, encoded_byte_limit)
    b64 = result.to_base64()
    return ResizeResponse(
        image_base64=b64,
        width=result.width,
        height=result.height,
        quality=result.quality,
        attempts=result.attempts,
        bytes=result.size,
        encoded_bytes=len(b64),
        history=result.history,
    )
