import os
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .db import create_db_and_tables
from .auth import router as auth_router
from .users import router as users_router
from .excel import router as excel_router
from .materials import router as materials_router
from .movements import router as movements_router
from .orders import router as orders_router
from .books import router as books_router
from .expenses import router as expenses_router
from .dashboard import router as dashboard_router
from .pricing import router as pricing_router
from .calculations import router as calculations_router
from .activity_logs import router as activity_logs_router

logger = logging.getLogger(__name__)


def get_cors_origins():
    """Get CORS origins from environment or use defaults for development"""
    origins_env = os.getenv("CORS_ORIGINS", "")
    if origins_env:
        return [o.strip() for o in origins_env.split(",") if o.strip()]
    # Default development origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://localhost:3000",
    ]


def configure_logging():
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Print Shop Management",
        description="Inventory, print orders, book catalog and expenses for a print shop",
        version="1.0.0"
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(excel_router)
    app.include_router(materials_router)
    app.include_router(movements_router)
    app.include_router(orders_router)
    app.include_router(books_router)
    app.include_router(expenses_router)
    app.include_router(dashboard_router)
    app.include_router(pricing_router)
    app.include_router(calculations_router)
    app.include_router(activity_logs_router)

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.on_event("startup")
    def on_startup():
        logger.info("Creating database tables at startup...")
        create_db_and_tables()
        logger.info("Database ready.")

    return app


app = create_app()
