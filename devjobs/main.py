from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from devjobs.config import APP_NAME, BACKEND_CORS_ORIGINS
from devjobs import models  # noqa: F401
from devjobs.utils.cloudinary_client import init_cloudinary
from devjobs.utils.log_config import configure_logging
from devjobs.routes import (
    auth_routes,
    oauth_routes,
    settings_routes,
    developer_routes,
    company_routes,
    position_routes,
    application_routes,
    payment_routes,
    public_routes,
    admin_routes,
    notification_routes
)

# Schema is managed by alembic (alembic upgrade head)

configure_logging()

app = FastAPI(title=APP_NAME)
init_cloudinary()

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in BACKEND_CORS_ORIGINS.split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["Location", "X-Next-Step"],
)


@app.get("/")
def root():
    return {"message": f"{APP_NAME} backend is running!"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


app.include_router(auth_routes.router)
app.include_router(oauth_routes.router)
app.include_router(settings_routes.router)
app.include_router(developer_routes.router)
app.include_router(company_routes.router)
app.include_router(position_routes.router)
app.include_router(application_routes.router)
app.include_router(application_routes.hr_router)
app.include_router(payment_routes.router)
app.include_router(payment_routes.webhook_router)
app.include_router(public_routes.router)
app.include_router(admin_routes.router)
app.include_router(notification_routes.router)
