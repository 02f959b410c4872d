from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse, JSONResponse
from app.api.endpoints import account, billing, plans, projects, public, usage
from app.core.database import engine, Base, SessionLocal
from app.core.settings import settings, DEV_JWT_SECRET
from app.services.plan_catalog import seed_plans
import logging
import os

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="PhotoPro API")

# Configure CORS
origins = settings.resolved_cors_origins()
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

@app.on_event("startup")
def startup() -> None:
    if settings.is_production and settings.jwt_secret == DEV_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set in production")
    if settings.is_production and not settings.airwallex_webhook_secret:
        logger.warning("startup.airwallex_webhook_secret_missing webhooks will be rejected")
    if settings.db_auto_create:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_plans(db)
    finally:
        db.close()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
    )


# API Routes
app.include_router(account.router, prefix="/api", tags=["account"])
app.include_router(plans.router, prefix="/api", tags=["plans"])
app.include_router(billing.router, prefix="/api", tags=["billing"])
app.include_router(projects.router, prefix="/api", tags=["projects"])
app.include_router(usage.router, prefix="/api", tags=["usage"])
app.include_router(public.router, prefix="/api", tags=["public"])

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

# Serve Frontend Static Files (Production Mode)
# In Docker the app runs from /app, so the built client is at /app/frontend/dist
frontend_dist_path = os.path.join(os.getcwd(), "frontend", "dist")

if os.path.exists(frontend_dist_path):
    app.mount("/assets", StaticFiles(directory=os.path.join(frontend_dist_path, "assets")), name="assets")

    # Catch-all for SPA
    @app.get("/{full_path:path}")
    async def serve_spa(full_path: str):
        if full_path.startswith("api"):
            return JSONResponse(status_code=404, content={"detail": "API route not found"})

        file_path = os.path.join(frontend_dist_path, full_path)
        if os.path.exists(file_path) and os.path.isfile(file_path):
            return FileResponse(file_path)

        # Return index.html for everything else
        return FileResponse(os.path.join(frontend_dist_path, "index.html"))

else:
    # Fallback for local development (without dist)
    @app.get("/")
    async def read_root():
        return {"message": "PhotoPro API (Frontend not built/served)"}
