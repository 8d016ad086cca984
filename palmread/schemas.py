from pydantic import BaseModel, Field
from typing import Optional, List

from .services.encoder import AttemptRecord

class BudgetInfo(BaseModel):
    raw_byte_limit: Optional[int] = None
    encoded_byte_limit: Optional[int] = None

class HealthResponse(BaseModel):
    status: str
    version: str
    budget: BudgetInfo
    max_upload_bytes: int

class ResizeResponse(BaseModel):
    image_base64: str = Field(..., description="Base64-encoded JPEG, no data: prefix")
    mime_type: str = "image/jpeg"
    width: int
    height: int
    quality: int
    attempts: int
    bytes: int = Field(..., description="Size of the JPEG file")
    encoded_bytes: int = Field(..., description="Length of image_base64")
    history: List[AttemptRecord] = []
