from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from polis.core.config import settings
from polis.core.errors import register_exception_handlers
from polis.core.storage import BlobStore
from polis.db.init_db import bootstrap_schema
from polis.db.session import Database
from polis.middleware.body_limit import BodySizeLimitMiddleware
from polis.middleware.request_logging import RequestLoggingMiddleware
from polis.modules.auth.api.router import router as auth_router
from polis.modules.friendships.api.router import router as friendships_router
from polis.modules.images.api.router import router as images_router
from polis.modules.posts.api.router import router as posts_router
from polis.modules.search.api.router import router as search_router
from polis.modules.user_management.api.router import router as user_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("polis")

# Initialize the FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_STR}/openapi.json",
    debug=settings.DEBUG,
    description="Location-based posts, events, friends and search",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    swagger_ui_parameters={"defaultModelsExpandDepth": -1},
)
register_exception_handlers(app)

app.state.database = Database(settings.database_url)
app.state.blob_store = BlobStore.from_settings(settings)


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting server in {settings.ENVIRONMENT} mode")
    app.state.database.open()
    failed = bootstrap_schema(app.state.database)
    if failed:
        logger.error(f"Schema objects missing after bootstrap: {failed}")


@app.on_event("shutdown")
async def shutdown_event():
    app.state.database.close()


# Add middleware
app.add_middleware(BodySizeLimitMiddleware, max_body_size=settings.MAX_BODY_SIZE)
app.add_middleware(RequestLoggingMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(auth_router, prefix=f"{settings.API_STR}/auth", tags=["authentication"])
app.include_router(user_router, prefix=settings.API_STR, tags=["users"])
app.include_router(posts_router, prefix=settings.API_STR, tags=["posts"])
app.include_router(images_router, prefix=settings.API_STR, tags=["images"])
app.include_router(friendships_router, prefix=settings.API_STR, tags=["friendships"])
app.include_router(search_router, prefix=settings.API_STR, tags=["search"])


@app.get(f"{settings.API_STR}/health")
def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("polis.main:app", host=settings.HOST, port=settings.PORT)
