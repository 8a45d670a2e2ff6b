"""release-bot HTTP entry point.

Routes:
- GET  /ping             liveness
- POST /github/webhook   pull_request, push, issue_comment (and ping) deliveries
- POST /shortcut/webhook story workflow-state changes
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from functools import lru_cache

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.concurrency import run_in_threadpool

from app.bot import ReleaseBot, build_bot
from app.webhooks import WebhookResponse, handle_github_delivery, handle_shortcut_delivery
from automation.config import ConfigError, Settings, load_settings

HOST = os.getenv("RELEASE_BOT_HOST", "127.0.0.1")
PORT = int(os.getenv("RELEASE_BOT_PORT", "8787"))

logger = logging.getLogger("release-bot")


def _setup_logging(log_file: str = "") -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        handlers=handlers,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def get_bot() -> ReleaseBot:
    return build_bot(get_settings())


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    _setup_logging(settings.log_file)
    if not settings.bot.organization:
        raise ConfigError("no organization configured; Shortcut re-verification cannot search PRs")
    if not settings.github_webhook_secret:
        logger.warning("GITHUB_WEBHOOK_SECRET is empty; GitHub deliveries are not authenticated.")
    logger.info("GitHub webhook: /github/webhook  Shortcut webhook: /shortcut/webhook")
    yield


app = FastAPI(title="release-bot", lifespan=lifespan)


def _respond(result: WebhookResponse) -> JSONResponse:
    return JSONResponse(status_code=int(result.status), content={"message": result.message})


@app.get("/ping")
def ping() -> dict[str, str]:
    return {"message": "pong"}


@app.post("/github/webhook")
async def github_webhook(
    request: Request,
    bot: ReleaseBot = Depends(get_bot),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    body = await request.body()
    result = await run_in_threadpool(
        handle_github_delivery,
        bot,
        body,
        request.headers.get("X-GitHub-Event", ""),
        request.headers.get("X-Hub-Signature-256", ""),
        settings.github_webhook_secret,
    )
    return _respond(result)


@app.post("/shortcut/webhook")
async def shortcut_webhook(
    request: Request,
    bot: ReleaseBot = Depends(get_bot),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    body = await request.body()
    result = await run_in_threadpool(
        handle_shortcut_delivery,
        bot,
        body,
        request.headers.get("Payload-Signature", ""),
        settings.shortcut_webhook_secret,
    )
    return _respond(result)


def main() -> None:
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    main()
