from fastapi import FastAPI
from fastapi.params import Depends
from PIL import Image

from .config import settings
from .routes.resize import router as resize_router
from .schemas import BudgetInfo, HealthResponse
from .security import verify_api_key, add_cors
from .utils.logger import configure_logging

VERSION = "0.2.0"

configure_logging()

# Process-wide Pillow setting, owned by the service rather than the codec module
Image.MAX_IMAGE_PIXELS = settings.MAX_IMAGE_PIXELS

app = FastAPI(title="Palm Photo Resize API", version=VERSION, dependencies=[Depends(verify_api_key)])

# CORS
add_cors(app)

app.include_router(resize_router)


@app.get("/health", response_model=HealthResponse)
def health():
    budget = settings.budget()
    return HealthResponse(
        status="ok",
        version=VERSION,
        budget=BudgetInfo(**budget.model_dump()),
        max_upload_bytes=settings.MAX_UPLOAD_BYTES,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
