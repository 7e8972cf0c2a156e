import asyncio
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Depends, Form, status, APIRouter
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import core modules
import config
from models import LinkCreatePayload, LinkResponse, LinkRelation, ShortenResponse, ErrorResponse, HealthResponse
from encoding import encode, decode, MAX_VALUE
from store import LinkStore
from resolver import Resolver

from core_logic import (
    logger, ShortenerException, InvalidURLException, ShortCodeNotFoundException,
    ShortCodeExhaustedException,
)

# --- LIFESPAN AND APP SETUP ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    config.config.validate()

    store = LinkStore()
    app.state.store = store
    app.state.resolver = Resolver(store)

    logger.info("Application started successfully")
    try:
        yield
    finally:
        logger.info(f"Application shutdown complete ({len(store)} links discarded)")

# Main app instance
app = FastAPI(
    title="URL Shortener",
    lifespan=lifespan
)

# --- DEPENDENCIES ---

def get_resolver(request: Request) -> Resolver:
    return request.app.state.resolver

def get_store(request: Request) -> LinkStore:
    return request.app.state.store

def build_short_url(short_code: str) -> str:
    return f"{config.BASE_URL.rstrip('/')}/{short_code}"

def ensure_well_formed(short_code: str) -> None:
    """Codes that the encoder can never produce are rejected without a lookup."""
    try:
        value = decode(short_code)
    except ValueError:
        raise ShortCodeNotFoundException(short_code) from None
    if value > MAX_VALUE or encode(value) != short_code:
        raise ShortCodeNotFoundException(short_code)

def link_response(request: Request, short_code: str, long_url: str) -> LinkResponse:
    return LinkResponse(
        short_code=short_code,
        short_url=build_short_url(short_code),
        long_url=long_url,
        links=[
            LinkRelation(rel="redirect", href=build_short_url(short_code)),
            LinkRelation(rel="self", href=str(request.url_for("get_link_details", short_code=short_code))),
        ]
    )

# --- ROUTERS DEFINITION (API) ---

api_router = APIRouter(prefix="/api/v1", tags=["API"])

@api_router.post(
    "/links",
    response_model=LinkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new short link",
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request: The URL is empty or malformed."},
        500: {"model": ErrorResponse, "description": "Internal Server Error: No free short code could be found."},
    }
)
async def api_create_link(
    request: Request,
    payload: LinkCreatePayload,
    resolver: Resolver = Depends(get_resolver),
):
    """Create (or return the existing) short link for a URL"""
    short_code = await asyncio.to_thread(resolver.shorten, payload.long_url)
    body = link_response(request, short_code, payload.long_url)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=body.model_dump(),
        headers={"Location": body.short_url}
    )

@api_router.get(
    "/links/{short_code}",
    response_model=LinkResponse,
    summary="Get Link Details",
    name="get_link_details",
    responses={404: {"model": ErrorResponse, "description": "Not Found: The short code does not exist."}}
)
async def get_link_details(short_code: str, request: Request, resolver: Resolver = Depends(get_resolver)):
    """Retrieves the details of a short link."""
    ensure_well_formed(short_code)
    long_url = await asyncio.to_thread(resolver.resolve, short_code)
    return link_response(request, short_code, long_url)

# --- ROUTERS DEFINITION (WEB) ---

web_router = APIRouter()

@web_router.post(
    "/shorten",
    response_model=ShortenResponse,
    responses={400: {"model": ErrorResponse, "description": "Bad Request: Missing or malformed url."}}
)
async def shorten(url: str = Form(""), resolver: Resolver = Depends(get_resolver)):
    """Shorten the form field `url`"""
    if not url:
        raise InvalidURLException("URL parameter is required")
    short_code = await asyncio.to_thread(resolver.shorten, url)
    return ShortenResponse(short_url=short_code, original_url=url)

@web_router.api_route("/shorten", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def shorten_method_not_allowed():
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"error": "Method not allowed"},
        headers={"Allow": "POST"}
    )

@web_router.get("/health", response_model=HealthResponse)
async def health_check(store: LinkStore = Depends(get_store)):
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        links=len(store),
        timestamp=datetime.now(timezone.utc).isoformat()
    )

@web_router.get("/", include_in_schema=False)
async def missing_short_code():
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Short code is required"}
    )

@web_router.get(
    "/{short_code}",
    response_class=RedirectResponse,
    status_code=status.HTTP_301_MOVED_PERMANENTLY,
    responses={404: {"model": ErrorResponse, "description": "Not Found: The short code does not exist."}}
)
async def redirect_short_code(short_code: str, resolver: Resolver = Depends(get_resolver)):
    """Permanently redirect a short code to its URL"""
    ensure_well_formed(short_code)
    long_url = await asyncio.to_thread(resolver.resolve, short_code)
    return RedirectResponse(url=long_url, status_code=status.HTTP_301_MOVED_PERMANENTLY)

# --- APPLICATION MOUNTING ---

app.include_router(api_router)
app.include_router(web_router)

# --- GLOBAL ERROR HANDLERS ---

@app.exception_handler(InvalidURLException)
async def invalid_url_handler(request: Request, exc: InvalidURLException):
    logger.warning(f"Rejected URL on {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": exc.detail})

@app.exception_handler(ShortCodeNotFoundException)
async def not_found_handler(request: Request, exc: ShortCodeNotFoundException):
    logger.warning(f"Unknown short code requested: {exc.short_code}")
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Short URL not found"})

@app.exception_handler(ShortCodeExhaustedException)
async def exhausted_handler(request: Request, exc: ShortCodeExhaustedException):
    logger.error(f"Short code generation failed: {exc.detail}")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": exc.detail})

@app.exception_handler(ShortenerException)
async def shortener_exception_handler(request: Request, exc: ShortenerException):
    logger.error(f"Unhandled shortener error on {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": exc.detail})

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def main():
    import uvicorn
    logger.info(f"URL Shortener server starting on {config.HOST}:{config.PORT}")
    logger.info("POST /shorten with 'url' parameter to shorten a URL")
    logger.info("GET /<short_code> to redirect to original URL")
    uvicorn.run("app:app", host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
