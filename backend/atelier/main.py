from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from atelier.routers import uploads, invoices, revenues, debts, ledger, reports, backup, session
from atelier.config import settings
from atelier.services.storage_service import StorageError, storage_service
import logging
import sys
import os

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

# Log startup information
logger.info("="*60)
logger.info("Starting Atelier Back-Office API")
logger.info("="*60)
logger.info(f"OCR function configured: {bool(settings.ocr_function_url)}")
logger.info(f"S3 storage configured: {bool(settings.storage_access_key_id and settings.storage_secret_access_key)}")
logger.info(f"Token audience check: {settings.auth_jwt_audience or 'disabled'}")
logger.info("="*60)

# Tables are managed by alembic migrations

app = FastAPI(
    title="Atelier Back-Office API",
    description="Invoices, revenues, debts, reports and backups for a tailoring shop",
    version="1.0.0"
)


def parse_cors_origins(origins_str: str) -> list:
    """Parse CORS origins string into a list."""
    return [origin.strip() for origin in origins_str.split(",") if origin.strip()]


cors_origins = parse_cors_origins(settings.cors_origins)
# Default origins for local development
default_origins = ["http://localhost:3000", "http://localhost:5173"]
all_origins = cors_origins or default_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=all_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

# Include routers
app.include_router(session.router)
app.include_router(uploads.router)  # OCR ingestion
app.include_router(invoices.router)
app.include_router(revenues.router)
app.include_router(debts.router)
app.include_router(ledger.router)  # Revenue/debt calendar
app.include_router(reports.router)
app.include_router(backup.router)


@app.get("/")
def root():
    return {"message": "Atelier Back-Office API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.get("/api/storage/{file_path:path}")
async def serve_storage_file(file_path: str):
    """
    Serve files from local storage or S3. This is the public URL of images
    when no public bucket URL is configured.

    Args:
        file_path: Storage path (e.g., "<user_id>/1700000000000_ab12cd34ef56.jpg")
    """
    try:
        file_content = storage_service.download_file(file_path)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="File not found")
    except StorageError as e:
        logger.error(f"Error serving file {file_path}: {str(e)}")
        raise HTTPException(status_code=500, detail="Error serving file")

    return Response(
        content=file_content,
        media_type=storage_service.get_content_type(file_path),
        headers={
            "Content-Disposition": f'inline; filename="{os.path.basename(file_path)}"'
        }
    )


# Exception handler to ensure CORS headers are always sent
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to ensure CORS headers are sent even on errors"""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    origin = request.headers.get("origin")
    headers = {
        "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS, PATCH",
        "Access-Control-Allow-Headers": "*",
    }
    if origin in all_origins:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"

    return JSONResponse(
        status_code=500,
        content={"detail": "Erro interno do servidor"},
        headers=headers,
    )
