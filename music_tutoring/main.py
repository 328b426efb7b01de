from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from datetime import datetime
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from music_tutoring.config import get_settings
from music_tutoring.database.database import init_db
from music_tutoring.errors import error_body, register_exception_handlers
from music_tutoring.logger import logger

### ROUTERS
from music_tutoring.routers.authentication import router as auth_router, limiter
from music_tutoring.routers.enquiry import router as enquiry_router
from music_tutoring.routers.student import router as student_router
from music_tutoring.routers.tutor import router as tutor_router

API_PREFIX = '/api'

class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging all HTTP requests and responses.

    Logs request method, URL, response status, and timing information.
    Handles errors by logging exceptions.
    """
    async def dispatch(self, request: Request, call_next):
        # Log request
        start_time = datetime.now()
        logger.info(f"Request: {request.method} {request.url.path}")

        try:
            response = await call_next(request)
            # Log response
            duration = (datetime.now() - start_time).total_seconds()
            logger.info(f"Response: {response.status_code} - Duration: {duration:.3f}s")
            return response
        except Exception as e:
            # Log error
            logger.error(f"Error processing request: {str(e)}")
            raise

async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content=error_body('RATE_LIMITED', f"Too many requests: {exc.detail}")
    )

app = FastAPI(
    title=get_settings().app_name,
    version=get_settings().app_version,
    openapi_url="/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add logging middleware
app.add_middleware(LoggingMiddleware)

# Add CORS middleware with environment configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
    max_age=3600
)

# Rate limiting and error responses
app.state.limiter = limiter
register_exception_handlers(app)
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

# Include routers
app.include_router(auth_router, prefix=API_PREFIX, tags=['authentication'])
app.include_router(tutor_router, prefix=API_PREFIX, tags=['tutors'])
app.include_router(student_router, prefix=API_PREFIX, tags=['students'])
app.include_router(enquiry_router, prefix=API_PREFIX, tags=['enquiries'])

@app.get("/health")
def health():
    return {"status": "ok", "timestamp": datetime.now().isoformat()}

@app.get(API_PREFIX)
def api_info():
    """
    API root returning the name, version and the available resources.

    Returns:
    - dict: API information
    """
    return {
        "name": get_settings().app_name,
        "version": get_settings().app_version,
        "endpoints": {
            "auth": f"{API_PREFIX}/auth",
            "tutors": f"{API_PREFIX}/tutors",
            "students": f"{API_PREFIX}/students",
            "enquiries": f"{API_PREFIX}/enquiries",
        },
    }

@app.on_event("startup")
async def startup_event():
    """
    Application startup handler.
    Creates missing tables and logs startup.
    """
    init_db()
    logger.info("Server starting up...")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Server shutting down...")

if __name__ == '__main__':
    import uvicorn
    uvicorn.run(app, host=get_settings().app_host, port=get_settings().app_port)
