# main.py (FastAPI): Telegram webhook for the earning bot
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from logging_config import setup_logging
from routers.webhook import get_telegram, webhook_router
from settings import settings

setup_logging()
log = logging.getLogger("earnbot")


async def register_webhook_on_startup():
    if not settings.register_webhook_on_startup:
        return
    if not settings.public_base_url:
        log.warning("REGISTER_WEBHOOK_ON_STARTUP set but PUBLIC_BASE_URL is empty")
        return
    url = settings.public_base_url.rstrip("/") + "/webhook"
    await get_telegram().set_webhook(url)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await register_webhook_on_startup()
    yield


app = FastAPI(title="Earning bot", lifespan=lifespan)

# --------- global request logger ----------
@app.middleware("http")
async def log_requests(request: Request, call_next):
    ip = request.headers.get("x-forwarded-for") or (request.client.host if request.client else None)
    log.info("REQ %s %s ip=%s", request.method, request.url.path, ip)

    # body logging for small JSON requests (avoid logging huge bodies in prod)
    body_bytes = await request.body()
    if body_bytes:
        snippet = body_bytes[:2000]
        log.debug("REQ_BODY %s", snippet.decode("utf-8", errors="replace"))

    # request.body() consumed; re-create request stream for downstream
    async def receive():
        return {"type": "http.request", "body": body_bytes, "more_body": False}
    request._receive = receive  # noqa: SLF001

    response = await call_next(request)
    log.info("RESP %s %s -> %s", request.method, request.url.path, response.status_code)
    return response


@app.get("/health")
def health():
    return {"ok": True}


app.include_router(webhook_router)
