from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from fabnest.shared.config import settings
from fabnest.shared.db import Base, engine
from fabnest.shared.http import install_error_handlers
from fabnest.shared.logging_config import setup_logging, logger

# import models so they register with Base.metadata
from fabnest.auth import models as auth_models  # noqa: F401
from fabnest.files import models as files_models  # noqa: F401
from fabnest.catalog import models as catalog_models  # noqa: F401
from fabnest.quotes import models as quotes_models  # noqa: F401
from fabnest.orders import models as orders_models  # noqa: F401

# Routers Import
from fabnest.auth.api import router as auth_router
from fabnest.admin.api import router as admin_router
from fabnest.files.api import router as files_router
from fabnest.quotes.api import router as quotes_router
from fabnest.orders.api import router as orders_router
from fabnest.catalog.api import products_router, gallery_router

setup_logging()

TAGS_METADATA = [
    {"name": "Auth", "description": "Register, log in and read the current user"},
    {"name": "Files", "description": "Upload 3D models and images"},
    {"name": "Quote requests", "description": "Price quotes for custom prints and their conversion to orders"},
    {"name": "Orders", "description": "Place, track and cancel orders"},
    {"name": "Products", "description": "Catalog products"},
    {"name": "Gallery", "description": "Showcase gallery"},
    {"name": "Admin", "description": "User management and raw file downloads"},
    {"name": "Health", "description": "Service health"},
]

app = FastAPI(
    title="FABNEST 3D",
    version="1.0.0",
    description="Custom 3D printing storefront: uploads, quotes and orders.",
    openapi_tags=TAGS_METADATA,
)

install_error_handlers(app)

@app.on_event("startup")
def _init_db():
    if not settings.is_dev and settings.JWT_KEY == "dev-secret":
        raise RuntimeError("JWT_KEY must be set outside dev")
    Base.metadata.create_all(bind=engine)
    logger.info("FABNEST API started (env=%s, storage=%s)", settings.ENV, settings.STORAGE_DIR)

@app.get("/healthz", tags=["Health"])
def healthz():
    return {"ok": True, "status": "healthy"}

# Routers
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(files_router)
app.include_router(quotes_router)
app.include_router(orders_router)
app.include_router(products_router)
app.include_router(gallery_router)

# --- Custom OpenAPI: add bearerAuth + default security ---
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    schema.setdefault("components", {}).setdefault("securitySchemes", {})
    schema["components"]["securitySchemes"]["bearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    public = {"/auth/register", "/auth/login", "/auth/token", "/healthz"}
    for path, ops in schema.get("paths", {}).items():
        if path in public or path.startswith(("/products", "/gallery")):
            continue
        for op in ops.values():
            op.setdefault("security", [{"bearerAuth": []}])
    app.openapi_schema = schema
    return app.openapi_schema

app.openapi = custom_openapi
