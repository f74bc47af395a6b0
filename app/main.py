"""
FastAPI application main module.
"""
import os
import json
import logging

# Initialize Sentry BEFORE importing anything else (for best error capture)
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

sentry_dsn = os.getenv('SENTRY_DSN')
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        integrations=[
            FastApiIntegration(),
            StarletteIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests traced
        environment=os.getenv('ENVIRONMENT', 'development'),
        send_default_pii=False,
    )
    logging.info("Sentry initialized for error monitoring")

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from app.routers.health import router as health_router
from app.routers.match import router as match_router
from app.middleware.auth import APIKeyMiddleware
from app.middleware.error_handling import setup_error_handling
from app.utils.logging_config import RequestLoggingMiddleware, setup_logging

dotenv_override = os.getenv("DOTENV_OVERRIDE", "false").lower() == "true"
load_dotenv(override=dotenv_override)

setup_logging()

app_name = os.getenv('APP_NAME', 'Study Buddy Matchmaking')
app_version = os.getenv('APP_VERSION', '1.0.0')
environment = os.getenv('ENVIRONMENT', 'development')

# Parse CORS origins from JSON string
cors_origins_str = os.getenv('CORS_ORIGINS', '["*"]')
try:
    cors_origins = json.loads(cors_origins_str)
except json.JSONDecodeError:
    cors_origins = None

if not isinstance(cors_origins, list) or not cors_origins:
    raise ValueError("CORS_ORIGINS must be a valid JSON array")

# Log non-sensitive configuration (NEVER log secrets/credentials)
logger = logging.getLogger(__name__)
logger.info(f"Starting {app_name} v{app_version} in {environment} environment")
logger.info(f"CORS origins: {len(cors_origins)} configured")
logger.info(f"Model: {os.getenv('OPENAI_MODEL', 'gpt-4.1-mini')}")

EXCLUDED_AUTH_PATHS = ["/health", "/api/v1/health", "/", "/docs", "/redoc", "/openapi.json"]

app = FastAPI(
    title=app_name,
    description="AI-powered study buddy matchmaking",
    version=app_version,
)

setup_error_handling(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-API-KEY", "X-User-ID", "Accept"],
)

# Excludes health check, docs, and OpenAPI endpoints
app.add_middleware(APIKeyMiddleware, exclude_paths=EXCLUDED_AUTH_PATHS)

# Added last so it wraps everything and sees the final status code
app.add_middleware(RequestLoggingMiddleware)

app.include_router(health_router)
app.include_router(match_router, prefix="/api/v1")
