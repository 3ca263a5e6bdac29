# catalog_service/main.py

import logging
import re
import sys
import time
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import (
    Depends,
    FastAPI,
    File,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from . import models  # noqa: F401  (registers tables on Base.metadata)
from .config import get_settings
from .db import Base, engine, get_db
from .repository import ProductRepository
from .schemas import (
    DeleteResponse,
    ProductCreate,
    ProductFilters,
    ProductResponse,
    ProductUpdate,
)
from .service import ProductService
from .storage import ObjectStore

# --- Standard Logging Configuration ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("uvicorn.error").setLevel(logging.INFO)
logging.getLogger("botocore").setLevel(logging.WARNING)

ALLOWED_IMAGE_MIME = re.compile(r"/(jpg|jpeg|png|gif|webp)$")
# Room for multipart boundaries and part headers around the file itself.
MULTIPART_OVERHEAD_BYTES = 64 * 1024

# --- FastAPI Application Setup ---
app = FastAPI(
    title="Product Service API",
    description="Product catalog with soft deletes and images in an S3-compatible object store.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Use specific origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Upload Size Guard ---
@app.middleware("http")
async def limit_image_upload_size(request: Request, call_next):
    """
    Refuses image uploads whose declared Content-Length is over the cap before
    the multipart body is read. Chunked bodies without a length are still
    checked by the upload route once parsed.
    """
    if request.method == "POST" and request.url.path.endswith("/image"):
        declared = request.headers.get("content-length")
        limit = get_settings().max_image_size_bytes + MULTIPART_OVERHEAD_BYTES
        if declared and declared.isdigit() and int(declared) > limit:
            logger.warning(
                f"Product Service: Rejected upload to {request.url.path}: Content-Length {declared} exceeds {limit} bytes."
            )
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"detail": "Request body too large."},
            )
    return await call_next(request)


# --- FastAPI Event Handlers ---
@app.on_event("startup")
async def startup_event():
    max_retries = 10
    retry_delay_seconds = 5
    for i in range(max_retries):
        try:
            logger.info(
                f"Product Service: Attempting to connect to the database and create tables (attempt {i+1}/{max_retries})..."
            )
            Base.metadata.create_all(bind=engine)
            logger.info(
                "Product Service: Successfully connected to the database and ensured tables exist."
            )
            break
        except OperationalError as e:
            logger.warning(f"Product Service: Failed to connect to the database: {e}")
            if i < max_retries - 1:
                logger.info(
                    f"Product Service: Retrying in {retry_delay_seconds} seconds..."
                )
                time.sleep(retry_delay_seconds)
            else:
                logger.critical(
                    f"Product Service: Failed to connect to the database after {max_retries} attempts. Exiting application."
                )
                sys.exit(1)

    settings = get_settings()
    object_store = ObjectStore(settings.object_store_config())
    object_store.ensure_bucket()
    app.state.object_store = object_store
    logger.info(
        f"Product Service: Object store ready at {object_store.config.endpoint_url} (bucket '{object_store.bucket_name}')."
    )


# --- Dependencies ---
def get_object_store(request: Request) -> ObjectStore:
    object_store = getattr(request.app.state, "object_store", None)
    if object_store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Object storage is not available.",
        )
    return object_store


def get_product_service(
    db: Session = Depends(get_db),
    object_store: ObjectStore = Depends(get_object_store),
) -> ProductService:
    return ProductService(ProductRepository(db), object_store)


# --- Root Endpoint ---
@app.get("/", status_code=status.HTTP_200_OK, summary="Root endpoint")
async def read_root():
    return {"message": "Welcome to the Product Service!"}


# --- Health Check Endpoint ---
@app.get("/health", status_code=status.HTTP_200_OK, summary="Health check endpoint")
async def health_check():
    return {"status": "ok", "service": "product-service"}


@app.get(
    "/products/",
    response_model=List[ProductResponse],
    response_model_exclude_unset=True,
    summary="Retrieve a list of products",
)
async def list_products(
    include_deleted: bool = Query(False),
    search: Optional[str] = Query(None, max_length=255),
    in_stock: Optional[bool] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    service: ProductService = Depends(get_product_service),
):
    """
    Lists products. Soft-deleted products are hidden unless include_deleted is set.
    """
    filters = ProductFilters(
        include_deleted=include_deleted,
        search=search,
        in_stock=in_stock,
        min_price=min_price,
        max_price=max_price,
        skip=skip,
        limit=limit,
    )
    logger.info(f"Product Service: Listing products with {filters.model_dump(exclude_none=True)}")
    return await service.find_all(filters)


@app.get(
    "/products/{product_id}",
    response_model=ProductResponse,
    response_model_exclude_unset=True,
    summary="Retrieve a single product by ID",
)
async def get_product(
    product_id: int, service: ProductService = Depends(get_product_service)
):
    logger.info(f"Product Service: Fetching product with ID: {product_id}")
    return await service.find_by_id(product_id)


@app.post(
    "/products/",
    response_model=ProductResponse,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
)
async def create_product(
    product: ProductCreate, service: ProductService = Depends(get_product_service)
):
    logger.info(f"Product Service: Creating product: {product.name}")
    return await service.create(product)


@app.put(
    "/products/{product_id}",
    response_model=ProductResponse,
    response_model_exclude_unset=True,
    summary="Update an existing product by ID",
)
async def update_product(
    product_id: int,
    product: ProductUpdate,
    service: ProductService = Depends(get_product_service),
):
    logger.info(
        f"Product Service: Updating product with ID: {product_id} with data: {product.model_dump(exclude_unset=True)}"
    )
    return await service.update(product_id, product)


@app.delete(
    "/products/{product_id}",
    response_model=DeleteResponse,
    summary="Soft-delete a product by ID",
)
async def delete_product(
    product_id: int, service: ProductService = Depends(get_product_service)
):
    """
    Marks a product as deleted. Its stored image is left untouched.
    """
    logger.info(f"Product Service: Attempting to delete product with ID: {product_id}")
    await service.remove(product_id)
    return DeleteResponse(
        message=f"Product with ID {product_id} deleted successfully",
        status="success",
        timestamp=datetime.now(timezone.utc),
    )


@app.post(
    "/products/{product_id}/image",
    response_model=ProductResponse,
    response_model_exclude_unset=True,
    summary="Upload an image for a product",
)
async def upload_product_image(
    product_id: int,
    image: Optional[UploadFile] = File(None),
    service: ProductService = Depends(get_product_service),
):
    """
    Stores the image in the object store and returns the product with a
    signed image URL. Accepts jpg, jpeg, png, gif and webp up to 5 MB.
    """
    data = None
    content_type = None
    if image is not None:
        content_type = image.content_type or ""
        if not ALLOWED_IMAGE_MIME.search(content_type):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only images are supported (jpg, jpeg, png, gif, webp).",
            )
        max_size = get_settings().max_image_size_bytes
        data = await image.read(max_size + 1)
        if len(data) > max_size:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Maximum size is {max_size // (1024 * 1024)} MB.",
            )
        logger.info(
            f"Product Service: Received image '{image.filename}' ({len(data)} bytes) for product {product_id}."
        )

    return await service.upload_image(product_id, data, content_type)


def run():
    import uvicorn

    uvicorn.run("catalog_service.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
