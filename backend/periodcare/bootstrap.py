"""
PeriodCare Backend - Bootstrap Sequencer
==========================================

What:  The ordered startup procedure from process launch to listening.
Why:   The service must never accept connections half-configured: missing
       secrets or an unreachable database stop it before a socket is bound.
How:   prepare() walks the stages and returns Ready or Fatal. It never exits
       the process itself, so tests can drive every failure path; main() is
       the only place that turns a Fatal into a non-zero exit status.

Stages:
    validating_env → middleware_ready → routes_mounted → connecting_db → listening
         │                                                    │
         └──────────────────────→ Fatal ←─────────────────────┘

Terminal states:
    Fatal      exit with status 1, nothing listened
    Listening  uvicorn serving until shutdown
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

import uvicorn
from fastapi import FastAPI
from pydantic import ValidationError

from periodcare.config import Settings
from periodcare.database import Database
from periodcare.exceptions import ConfigurationError, DatabaseConnectionError
from periodcare.main import create_app, setup_logging

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    VALIDATING_ENV = "validating_env"
    MIDDLEWARE_READY = "middleware_ready"
    ROUTES_MOUNTED = "routes_mounted"
    CONNECTING_DB = "connecting_db"
    LISTENING = "listening"


@dataclass(frozen=True)
class Fatal:
    """Startup cannot continue; the entry point exits with exit_code."""

    stage: Stage
    reason: str
    exit_code: int = 1


@dataclass(frozen=True)
class Ready:
    """Everything is wired and the database answered; safe to listen."""

    app: FastAPI
    settings: Settings
    database: Database


StartupResult = Union[Ready, Fatal]


def load_settings(env_file: Optional[str] = ".env", **overrides: Any) -> Settings:
    """
    Read and validate the configuration snapshot.

    Raises:
        ConfigurationError: a required value is empty, or a value does not
            parse (e.g. PORT=abc).
    """
    try:
        settings = Settings(_env_file=env_file, **overrides)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ConfigurationError(
            message=f"Invalid configuration values: {fields}",
            context={"errors": e.errors()},
        ) from e
    return settings.require()


async def prepare(settings: Optional[Settings] = None, **app_kwargs: Any) -> StartupResult:
    """
    Run every startup stage up to (not including) listening.

    Args:
        settings:    Pre-built snapshot; loaded from the environment when omitted.
        app_kwargs:  Collaborator overrides forwarded to create_app().
    """
    # ── Stage 1: environment ──────────────────────────────────────────────
    logger.info("Checking environment variables...")
    try:
        settings = load_settings() if settings is None else settings.require()
    except ConfigurationError as e:
        logger.error("Startup aborted at %s: %s", Stage.VALIDATING_ENV.value, e.message)
        return Fatal(Stage.VALIDATING_ENV, e.message)
    logger.info("Clerk secret key found")

    # ── Stages 2-3: middleware chain and route groups ─────────────────────
    try:
        app = create_app(settings, **app_kwargs)
    except ConfigurationError as e:
        # DATABASE_URL is only checked when the engine is built
        logger.error("Startup aborted at %s: %s", Stage.VALIDATING_ENV.value, e.message)
        http_client = app_kwargs.get("http_client")
        if http_client is not None:
            await http_client.aclose()
        return Fatal(Stage.VALIDATING_ENV, e.message)
    logger.info("Stage %s: middleware chain ready", Stage.MIDDLEWARE_READY.value)
    logger.info("Stage %s: %d routes registered", Stage.ROUTES_MOUNTED.value, len(app.routes))

    # ── Stage 4: database ─────────────────────────────────────────────────
    database: Database = app.state.database
    try:
        await database.connect()
    except DatabaseConnectionError as e:
        logger.error("Startup aborted at %s: %s", Stage.CONNECTING_DB.value, e.message)
        await app.state.http_client.aclose()
        await database.dispose()
        return Fatal(Stage.CONNECTING_DB, e.message)

    return Ready(app=app, settings=settings, database=database)


async def serve(ready: Ready) -> None:
    """Start listening; returns when uvicorn shuts down."""
    config = uvicorn.Config(
        ready.app,
        host=ready.settings.host,
        port=ready.settings.port,
        log_config=None,  # keep the logging set up by setup_logging()
        lifespan="on",
    )
    logger.info(
        "Stage %s: server running on port %d in %s mode",
        Stage.LISTENING.value,
        ready.settings.port,
        ready.settings.environment,
    )
    await uvicorn.Server(config).serve()


async def run() -> int:
    result = await prepare()
    if isinstance(result, Fatal):
        return result.exit_code
    setup_logging(result.settings.log_level)
    await serve(result)
    return 0


def main() -> int:
    """Process entry point (`python -m periodcare` / `periodcare`)."""
    setup_logging()
    return asyncio.run(run())
