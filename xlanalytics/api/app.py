"""
FastAPI app
"""

from importlib.metadata import version

from fastapi import FastAPI

from .dependencies import DATABASE_MANAGER, SETTINGS, logger
from .errors import add_exception_handlers
from .groups import group_app
from .history import history_app
from .profile import profile_app

settings = SETTINGS()


async def lifespan(app: FastAPI):
    log = logger()

    if settings.create_tables:
        await DATABASE_MANAGER.create_all()
        await log.ainfo("app.tables_created")

    if settings.public_key() is None:
        await log.awarning("app.no_identity_public_key")

    yield


app = FastAPI(
    lifespan=lifespan,
    title="Excel Analytics API",
    summary=(
        "Upload history, statistics and group membership for Excel Analytics. "
        "Authentication is delegated to an external identity provider."
    ),
    version=version("xlanalytics"),
)

app = add_exception_handlers(app)

app.include_router(profile_app, prefix="/profile")
app.include_router(group_app, prefix="/groups")
app.include_router(history_app, prefix="/history")
