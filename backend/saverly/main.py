from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from saverly.core.config import settings
from saverly.core.errors import SaverlyError, StoreUnavailable, ValidationFailed
from saverly.core.logging import setup_logging, get_logger
from saverly.core.security_headers import SecurityHeadersMiddleware
from saverly.routers import health, coupons, redemptions, admin_redemptions

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """アプリケーションライフサイクル管理"""
    setup_logging(debug=settings.DEBUG, service="saverly-api")
    logger.info("アプリケーション起動")
    yield
    logger.info("アプリケーション終了")


app = FastAPI(
    title=settings.SITE_NAME,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)


@app.exception_handler(SaverlyError)
async def saverly_error_handler(request: Request, exc: SaverlyError):
    # 資格なし・期限切れは通常フロー。インシデント扱いはDB障害のみ
    if isinstance(exc, StoreUnavailable):
        logger.error(f"DB障害: {request.method} {request.url.path}")
    elif not isinstance(exc, ValidationFailed):
        logger.info(f"リクエスト拒否: {request.url.path} code={exc.code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
    )


# ミドルウェア (登録順序: 後に登録したものが先に実行される)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ルーター登録
app.include_router(health.router)
app.include_router(coupons.router)
app.include_router(redemptions.router)
app.include_router(admin_redemptions.router)
