"""API routes package."""

from filehub.routes.auth_routes import router as auth_router
from filehub.routes.user_routes import router as user_router
from filehub.routes.file_routes import router as file_router
from filehub.routes.file_routes import share_router
from filehub.routes.upload_routes import router as upload_router

__all__ = ["auth_router", "user_router", "file_router", "share_router", "upload_router"]
