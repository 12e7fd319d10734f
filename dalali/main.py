import logging

import asyncpg
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .db import close_pool
from .errors import DalaliError, StoreError
from .routes import cart, items, orders, profile, stakeholders
from .services.cart import make_cart_debouncer
from .settings import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Dalali App API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(items.router)
app.include_router(stakeholders.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(profile.router)


@app.exception_handler(DalaliError)
async def _dalali_error(request: Request, exc: DalaliError):
    body = {"detail": exc.message}
    if isinstance(exc, StoreError) and exc.step:
        body["step"] = exc.step
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(asyncpg.DataError)
async def _data_error(request: Request, exc: asyncpg.DataError):
    # malformed input that reached the database, e.g. a non-uuid id
    logger.info("%s %s rejected by the database: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": "invalid value"})


@app.get("/")
def root():
    return {"message": "Dalali API is running"}


@app.on_event("startup")
async def _startup():
    app.state.cart_debouncer = make_cart_debouncer(settings.debounce_window)
    logger.info("cart edits debounced over %dms", settings.debounce_window_ms)


@app.on_event("shutdown")
async def _shutdown():
    try:
        await app.state.cart_debouncer.close()
    except StoreError as e:
        logger.error("[shutdown] pending cart edits were not saved: %s", e)
    await close_pool()
