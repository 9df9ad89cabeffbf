"""Entry point for the FileHub service."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from filehub.cleanup_task import AbandonedUploadCleaner
from filehub.config import FILEHUB_HOST, FILEHUB_PORT
from filehub.database import get_db_connection, init_database
from filehub.exceptions import (
    FileHubException,
    UserAlreadyExistsError,
    InvalidCredentialsError,
    InvalidSessionError,
    UnauthorizedAccessError,
    FileNotFoundError,
    UserNotFoundError,
    QuotaExceededError,
    MissingChunkError,
    NoChunksFoundError,
    ChunkChecksumMismatchError,
    InvalidChunkIndexError,
    UploadAlreadyCompleteError,
    InvalidRequestError
)
from filehub.routes.auth_routes import router as auth_router
from filehub.routes.file_routes import router as file_router
from filehub.routes.file_routes import share_router
from filehub.routes.upload_routes import router as upload_router
from filehub.routes.user_routes import router as user_router
from filehub.services.auth_service import AuthService

logger = setup_logging('filehub')

app = FastAPI(
    title="FileHub",
    description="Multi-tenant chunked file storage with sharing and per-user quotas",
    version="1.0.0"
)

cleanup_task = AbandonedUploadCleaner()


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(f"Request started: {request.method} {request.url.path} [request_id={request_id}]")

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Initialize database, bootstrap the Master account and start the sweeper.
    """
    logger.info("FileHub service starting up...")

    init_database()
    logger.info("Database initialized")

    AuthService().ensure_master_account()

    await cleanup_task.start()
    logger.info("Background cleanup task started")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FileHub service shutting down...")
    await cleanup_task.stop()
    logger.info("Cleanup task stopped")


def _error(request: Request, status_code: int, code: str, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(f"{code}: {exc} [request_id={request_id}] path={request.url.path}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "code": code})


@app.exception_handler(UserAlreadyExistsError)
async def user_already_exists_handler(request: Request, exc: UserAlreadyExistsError):
    return _error(request, status.HTTP_400_BAD_REQUEST, "USER_ALREADY_EXISTS", exc)


@app.exception_handler(InvalidCredentialsError)
async def invalid_credentials_handler(request: Request, exc: InvalidCredentialsError):
    return _error(request, status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS", exc)


@app.exception_handler(InvalidSessionError)
async def invalid_session_handler(request: Request, exc: InvalidSessionError):
    return _error(request, status.HTTP_401_UNAUTHORIZED, "INVALID_SESSION", exc)


@app.exception_handler(UnauthorizedAccessError)
async def unauthorized_access_handler(request: Request, exc: UnauthorizedAccessError):
    return _error(request, status.HTTP_403_FORBIDDEN, "UNAUTHORIZED_ACCESS", exc)


@app.exception_handler(FileNotFoundError)
async def file_not_found_handler(request: Request, exc: FileNotFoundError):
    return _error(request, status.HTTP_404_NOT_FOUND, "FILE_NOT_FOUND", exc)


@app.exception_handler(UserNotFoundError)
async def user_not_found_handler(request: Request, exc: UserNotFoundError):
    return _error(request, status.HTTP_404_NOT_FOUND, "USER_NOT_FOUND", exc)


@app.exception_handler(QuotaExceededError)
async def quota_exceeded_handler(request: Request, exc: QuotaExceededError):
    return _error(request, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "QUOTA_EXCEEDED", exc)


@app.exception_handler(MissingChunkError)
async def missing_chunk_handler(request: Request, exc: MissingChunkError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(f"MISSING_CHUNK: {exc} [request_id={request_id}] path={request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "code": "MISSING_CHUNK", "chunk_index": exc.chunk_index}
    )


@app.exception_handler(NoChunksFoundError)
async def no_chunks_found_handler(request: Request, exc: NoChunksFoundError):
    return _error(request, status.HTTP_409_CONFLICT, "NO_CHUNKS_FOUND", exc)


@app.exception_handler(ChunkChecksumMismatchError)
async def checksum_mismatch_handler(request: Request, exc: ChunkChecksumMismatchError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Checksum mismatch error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc), "code": "CHECKSUM_MISMATCH", "chunk_index": exc.chunk_index}
    )


@app.exception_handler(InvalidChunkIndexError)
async def invalid_chunk_index_handler(request: Request, exc: InvalidChunkIndexError):
    return _error(request, status.HTTP_400_BAD_REQUEST, "INVALID_CHUNK_INDEX", exc)


@app.exception_handler(UploadAlreadyCompleteError)
async def upload_already_complete_handler(request: Request, exc: UploadAlreadyCompleteError):
    return _error(request, status.HTTP_409_CONFLICT, "UPLOAD_ALREADY_COMPLETE", exc)


@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError):
    return _error(request, status.HTTP_400_BAD_REQUEST, "INVALID_REQUEST", exc)


@app.exception_handler(FileHubException)
async def filehub_exception_handler(request: Request, exc: FileHubException):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"FileHub exception: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc), "code": "INTERNAL_ERROR"}
    )


app.include_router(auth_router)
app.include_router(user_router)
app.include_router(upload_router)
app.include_router(file_router)
app.include_router(share_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "FileHub API", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    """
    return {"status": "healthy", "service": "filehub"}


@app.get("/ready")
def ready_check():
    """
    Readiness check endpoint. Verifies database connectivity.
    """
    try:
        with get_db_connection() as conn:
            conn.execute("SELECT 1 FROM users LIMIT 1")
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {str(e)}"

    ready = db_status == "ok"
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"ready": ready, "database": db_status}
    )


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "filehub.main:app",
        host=FILEHUB_HOST,
        port=FILEHUB_PORT,
    )


if __name__ == "__main__":
    main()
