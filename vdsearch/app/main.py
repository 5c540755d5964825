import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse

from vdsearch.app import config
from vdsearch.app.api import admin_endpoints, search_endpoints, session_endpoints, settings_endpoints
from vdsearch.app.auth.dependencies import require_admin_user
from vdsearch.app.dependencies import initialize_on_startup, shutdown_dependencies
from vdsearch.app.utils.observability import configure_logging, configure_metrics

configure_logging()

# Docs are served below behind the admin token instead of the public defaults
app = FastAPI(title="vd search", docs_url=None, redoc_url=None, openapi_url=None)
configure_metrics(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(config.CORS_ALLOW_ORIGINS),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(search_endpoints.router)
app.include_router(session_endpoints.router)
app.include_router(settings_endpoints.router)
app.include_router(admin_endpoints.router)


@app.get("/")
async def read_root():
    return {"message": "vd search API"}


@app.get("/docs", include_in_schema=False)
async def get_swagger_documentation(_=Depends(require_admin_user)):
    """Swagger UI documentation - Admin access only."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="API Documentation")


@app.get("/redoc", include_in_schema=False)
async def get_redoc_documentation(_=Depends(require_admin_user)):
    """ReDoc documentation - Admin access only."""
    return get_redoc_html(openapi_url="/openapi.json", title="API Documentation")


@app.get("/openapi.json", include_in_schema=False)
async def get_openapi_schema(_=Depends(require_admin_user)):
    """OpenAPI schema - Admin access only."""
    return JSONResponse(content=get_openapi(
        title=app.title,
        version=app.version,
        openapi_version=app.openapi_version,
        description=app.description,
        routes=app.routes,
    ))


@app.on_event("startup")
async def startup_event():
    logging.info("Application starting up, checking dependencies...")
    try:
        await initialize_on_startup()
        logging.info("Dependencies initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize dependencies: {str(e)}")


@app.on_event("shutdown")
async def shutdown_event():
    await shutdown_dependencies()
