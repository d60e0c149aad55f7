from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from dotenv import load_dotenv
from cinetime.database import init_db
from cinetime.routes import auth, password, media
from cinetime.middleware.security import SecurityHeadersMiddleware
from cinetime.services.email_service import EmailService
from cinetime.services.tmdb_service import TMDBClient, CatalogUnavailableError
import os
import logging

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


# ============================================
# Application Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events

    Startup:
    - Connect to the database and create tables (failure aborts startup)
    - Build the TMDB client and the mailer shared by all requests

    Shutdown:
    - Close the TMDB HTTP session
    """
    # Startup
    logger.info("=" * 60)
    logger.info("Cinetime API Starting...")
    logger.info(f"   Environment: {os.getenv('ENVIRONMENT', 'development')}")
    logger.info(f"   CORS Origins: {len(allowed_origins)} configured")
    logger.info("=" * 60)

    init_db()
    app.state.catalog = TMDBClient.from_env()
    app.state.mailer = EmailService.from_env()

    yield

    # Shutdown
    logger.info("Cinetime API Shutting Down...")
    app.state.catalog.close()
    logger.info("   TMDB session closed")


# Create FastAPI app with lifespan handler
app = FastAPI(
    title="Cinetime API",
    description="Movie and TV watch tracking with TMDB integration",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# ============================================
# Security Configuration
# ============================================

# CORS - Whitelist allowed origins
allowed_origins = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://localhost:5173",
    "http://localhost:5174",
]
if production_url := os.getenv("FRONTEND_URL"):
    allowed_origins.append(production_url)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["*"],
)

app.add_middleware(SecurityHeadersMiddleware)

# Trusted Hosts - Production only
if os.getenv("ENVIRONMENT") == "production":
    if trusted_hosts := [h.strip() for h in os.getenv("TRUSTED_HOSTS", "").split(",") if h.strip()]:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=trusted_hosts)


# ============================================
# Exception Handlers - keep CORS on every error response
# ============================================

def _with_cors(request: Request, response: JSONResponse) -> JSONResponse:
    origin = request.headers.get("origin")
    if origin in allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "*"
        response.headers["Access-Control-Expose-Headers"] = "*"
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed input is a 400, with the first problem surfaced as ``detail``"""
    errors = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    detail = errors[0]["msg"] if errors else "Invalid request"
    return _with_cors(request, JSONResponse(
        status_code=400,
        content={"detail": detail, "errors": errors}
    ))


@app.exception_handler(CatalogUnavailableError)
async def catalog_exception_handler(request: Request, exc: CatalogUnavailableError):
    return _with_cors(request, JSONResponse(
        status_code=500,
        content={"detail": f"Catalog unavailable: {str(exc)}"}
    ))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Custom exception handler that keeps CORS headers on errors
    Matters most for 401 responses seen by the browser
    """
    return _with_cors(request, JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None)
    ))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Catch-all handler"""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return _with_cors(request, JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    ))


# ============================================
# Routes
# ============================================

@app.get("/", tags=["Health"])
async def root():
    """Basic health check"""
    return {
        "message": "Cinetime API",
        "version": "1.0.0",
        "status": "healthy",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check for monitoring"""
    return {
        "status": "healthy",
        "api_version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "security": {
            "security_headers": "enabled",
            "trusted_hosts": "enabled" if os.getenv("ENVIRONMENT") == "production" else "disabled"
        }
    }

app.include_router(auth.router)
app.include_router(password.router)
app.include_router(media.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
