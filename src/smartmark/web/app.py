"""FastAPI application factory for the SMARTMARK web UI."""

from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from ..db.config import get_config

# Paths
WEB_DIR = Path(__file__).parent
TEMPLATES_DIR = WEB_DIR / "templates"
STATIC_DIR = WEB_DIR / "static"


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app
    """
    config = get_config()

    app = FastAPI(
        title="Smart Bookmark App",
        description="Save and organize your favorite links",
    )

    # Session middleware for auth cookies
    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session_secret,
        session_cookie="smartmark_session",
        max_age=60 * 60 * 24 * 7,  # 1 week
        https_only=config.site_url.startswith("https://"),
    )

    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    # Templates (shared instance accessible via app.state)
    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    templates.env.globals["supabase_configured"] = config.is_configured
    app.state.templates = templates

    from .routes.api import router as api_router
    from .routes.pages import router as pages_router

    app.include_router(api_router, prefix="/api")
    app.include_router(pages_router)

    return app
