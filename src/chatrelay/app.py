from contextlib import asynccontextmanager
import logging

import air
from air.responses import JSONResponse
from sqlalchemy.engine import Engine
from starlette.concurrency import run_in_threadpool

from chatrelay import db
from chatrelay.logging_config import setup_logging
from chatrelay.origin import OriginPolicy
from chatrelay.pool import ConnectionPool
from chatrelay.reporting import ErrorReporter
from chatrelay.reporting import LoggingErrorReporter
from chatrelay.routes.broadcast import router as broadcast_router
from chatrelay.routes.channels import router as channel_router
from chatrelay.settings import Settings
from chatrelay.settings import settings as default_settings
from chatrelay.store import init_db
from chatrelay.store import MessageStore
from chatrelay.store import SqlMessageStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    engine: Engine | None = None,
    store: MessageStore | None = None,
    reporter: ErrorReporter | None = None,
) -> air.Air:
    settings = settings or default_settings
    engine = engine or db.engine
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app):
        # Schema problems at startup are fatal
        await run_in_threadpool(init_db, engine, settings.default_channel_id)
        logger.info("Relay ready (origin=%s)", settings.allowed_origin)
        yield
        engine.dispose()

    app = air.Air(lifespan=lifespan)

    app.state.settings = settings
    app.state.pool = ConnectionPool()
    app.state.store = store or SqlMessageStore(db.make_sessionmaker(engine))
    app.state.reporter = reporter or LoggingErrorReporter()
    app.state.origin_policy = OriginPolicy(settings.allowed_origin)

    app.include_router(broadcast_router)
    app.include_router(channel_router)

    @app.get("/healthz")
    def healthz():
        return JSONResponse({"ok": True, "connections": len(app.state.pool)})

    return app


app = create_app()
