import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from forum.cache import cache
from forum.config import settings
from forum.exceptions import ForumError
from forum.middleware import RequestLogMiddleware
from forum.routers import banners, messages, polls, topics, users
from forum.scheduler import account_cleanup

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await cache.connect()
    if settings.ACCOUNT_CLEANUP_ENABLED:
        await account_cleanup.start()
    yield
    await account_cleanup.stop()
    await cache.disconnect()


app = FastAPI(
    title="Forum API",
    description="Discussion forum: accounts, topics, polls, private messages and banners",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users.router)
app.include_router(messages.router)
app.include_router(polls.router)
app.include_router(topics.router)
app.include_router(banners.router)


@app.exception_handler(ForumError)
async def forum_error_handler(request: Request, exc: ForumError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
