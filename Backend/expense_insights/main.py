from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from expense_insights.api.changes import router as changes_router
from expense_insights.api.claims import router as claims_router
from expense_insights.api.departments import router as departments_router
from expense_insights.api.dependencies import configure_cache
from expense_insights.config import Settings
from expense_insights.db.database import create_tables, init_engine
from expense_insights.logging_config import configure_logging


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    engine = init_engine(settings.database_url, echo=settings.sql_echo)
    create_tables(engine)
    configure_cache(settings)

    app = FastAPI(title="Expense Claim Analytics & Insights")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"status": "ok", "message": "Backend running. Visit /docs for API."}

    app.include_router(claims_router, prefix="/api", tags=["claims"])
    app.include_router(departments_router, prefix="/api", tags=["departments"])
    app.include_router(changes_router, prefix="/api", tags=["changes"])
    return app


app = create_app()
