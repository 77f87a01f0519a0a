import logging
import time
from pathlib import Path

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, RedirectResponse, Response

from shortlinks import __version__, auth, config, qr_utils, schemas
from shortlinks.accounts import CredentialStore
from shortlinks.errors import ExpiredError, NotFoundError, ShortLinksError
from shortlinks.registry import LinkRegistry
from shortlinks.store import open_store

# --- Logging ---
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger("shortlinks")

# --- Storage: one document store shared by links and accounts ---
store = open_store()
registry = LinkRegistry(store)
accounts = CredentialStore(store)


def get_registry() -> LinkRegistry:
    return registry


def get_accounts() -> CredentialStore:
    return accounts


def short_url(code: str) -> str:
    return f"{config.PUBLIC_BASE_URL}/{code}"


app = FastAPI(
    title="Short Links",
    description="Shorten URLs per account, with click counts and expiring links.",
    version=__version__,
)

# --- CORS (allow frontend dev servers, etc.) ---
origins = ["*"] if config.ENVIRONMENT == "dev" else [config.PUBLIC_BASE_URL]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s -> %s (%.1fms)", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


@app.exception_handler(ShortLinksError)
async def shortlinks_error_handler(request: Request, exc: ShortLinksError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Badly shaped bodies are bad input like any other: 400 with a plain message.
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    detail = f"Invalid {field}: {message}" if field else message
    return JSONResponse(status_code=400, content={"detail": detail})


FRONTEND_DIR = Path(__file__).parent / "frontend"

@app.get("/", include_in_schema=False)
def serve_index():
    return FileResponse(FRONTEND_DIR / "index.html")

# Small config for frontend to know public base URL
@app.get("/config", include_in_schema=False)
def get_config():
    return {"public_base_url": config.PUBLIC_BASE_URL}

@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok", "env": config.ENVIRONMENT}

# ---------- Auth ----------
@app.post("/api/auth/signup", response_model=schemas.Token)
def signup(creds: schemas.Credentials | None = None, accounts: CredentialStore = Depends(get_accounts)):
    creds = creds or schemas.Credentials()
    user = accounts.register(creds.username, creds.password)
    logger.info("Registered user %s (%s)", user.username, user.id)
    return {"token": auth.create_access_token(user)}

@app.post("/api/auth/login", response_model=schemas.Token)
def login(creds: schemas.Credentials | None = None, accounts: CredentialStore = Depends(get_accounts)):
    creds = creds or schemas.Credentials()
    user = accounts.authenticate(creds.username, creds.password)
    return {"token": auth.create_access_token(user)}

# ---------- Links ----------
@app.post("/api/shorten", response_model=schemas.ShortenOut)
def shorten(
    link_in: schemas.ShortenIn | None = None,
    registry: LinkRegistry = Depends(get_registry),
    user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    link_in = link_in or schemas.ShortenIn()
    record = registry.create_link(user.id, link_in.url, link_in.custom_code, link_in.ttl_seconds)
    logger.info("Created link: code=%s target=%s by=%s", record.code, record.target_url, user.username)
    return schemas.ShortenOut(short=short_url(record.code), code=record.code, expires_at=record.expires_at)

@app.get("/api/shorts", response_model=schemas.LinkList)
def list_shorts(
    registry: LinkRegistry = Depends(get_registry),
    user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    return schemas.LinkList(items=registry.list_by_owner(user.id))

@app.get("/api/shorts/{code}/qr", response_model=schemas.QrOut)
def link_qr(
    code: str,
    fmt: str = Query("json", alias="format"),
    registry: LinkRegistry = Depends(get_registry),
    user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    record = registry.lookup(code)
    if record.owner_id != user.id:
        raise HTTPException(status_code=404, detail="Not found")
    logger.info("QR for %s by=%s", code, user.username)
    if fmt == "png":
        return Response(content=qr_utils.render_qr_png(short_url(code)), media_type="image/png")
    return {"qr_base64": qr_utils.short_url_qr_base64(short_url(code))}

# ---------- Redirect (keep last: catches every single-segment path) ----------
@app.get("/{code}", include_in_schema=False)
def redirect(code: str, registry: LinkRegistry = Depends(get_registry)):
    try:
        target = registry.resolve_and_hit(code)
    except NotFoundError:
        return HTMLResponse("<h1>Not found</h1>", status_code=404)
    except ExpiredError:
        return HTMLResponse("<h1>Link expired</h1>", status_code=410)
    return RedirectResponse(url=target, status_code=302)


def run():
    uvicorn.run("shortlinks.main:app", host="0.0.0.0", port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
