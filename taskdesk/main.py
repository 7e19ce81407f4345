from fastapi import FastAPI

from taskdesk.config import settings
from taskdesk.error_handlers import register_exception_handlers
from taskdesk.logging_setup import setup_logging
from taskdesk.routes.auth import router as auth_router
from taskdesk.routes.departments import router as departments_router
from taskdesk.routes.health import router as health_router
from taskdesk.routes.tasks import router as tasks_router

def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title="taskdesk", version="0.1.0")
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(tasks_router)
    app.include_router(departments_router)
    return app

app = create_app()
