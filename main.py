"""
Spreadsheet Combiner API

Upload Excel/CSV spreadsheets, inspect their columns, pick columns across
files, preview the combined table and export it as a new .xlsx or .csv file.

Key modules:
- main.py: FastAPI application, logging and error handlers
- api/: upload and spreadsheet routers
- spreadsheet_service.py: service layer returning Result objects
- spreadsheet_reader.py, structure_analyzer.py, combine_engine.py, export_writer.py: the tabular pipeline
- utils/result.py: Result pattern implementation for error handling
"""
from fastapi import FastAPI, Request, status
import os
import logging
from datetime import datetime
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import planilhas, upload
from config import settings
from utils.result import Result


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file
log_file_path = os.path.join(settings.log_path, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path)
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
logging.getLogger().addHandler(file_handler)


# Initialize FastAPI app with metadata
app = FastAPI(
    title="Spreadsheet Combiner API",
    description="API for analyzing, combining and exporting Excel/CSV spreadsheets",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(upload.router)
app.include_router(planilhas.router)

# Download path for export artifacts
app.mount(
    settings.EXPORT_URL_PREFIX,
    StaticFiles(directory=settings.export_path, check_dir=False),
    name="exports",
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are reported as 400, in the same shape as other errors."""
    logger.warning(f"Invalid request to {request.url.path}", extra={"errors": str(exc.errors())})
    content = Result.invalid_input("Invalid request data").to_dict()
    content["details"] = exc.errors()
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=jsonable_encoder(content))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        content = Result.not_found("Route not found").to_dict()
        content["path"] = request.url.path
    else:
        content = Result.fail(str(exc.detail), status_code=exc.status_code).to_dict()
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {str(exc)}")
    content = Result.server_error("Internal server error").to_dict()
    content["message"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


@app.get("/health", tags=["Health"])
async def health():
    """Liveness check."""
    return {"status": "ok", "version": app.version}


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Spreadsheet Combiner API on port {settings.PORT}.")
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=settings.RELOAD)
