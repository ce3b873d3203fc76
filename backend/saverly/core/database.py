from typing import Callable, TypeVar

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session
from sqlalchemy.pool import StaticPool

from saverly.core.config import settings
from saverly.core.errors import StoreUnavailable
from saverly.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _engine_options(url: str) -> dict:
    """接続URLごとのエンジン設定 (タイムアウトは DB_TIMEOUT_SECONDS)"""
    if url.startswith("sqlite"):
        # テスト用: インメモリDBを全セッションで共有
        return {
            "connect_args": {"check_same_thread": False, "timeout": settings.DB_TIMEOUT_SECONDS},
            "poolclass": StaticPool,
        }
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "pool_timeout": settings.DB_TIMEOUT_SECONDS,
        "connect_args": {
            "connect_timeout": settings.DB_TIMEOUT_SECONDS,
            "read_timeout": settings.DB_TIMEOUT_SECONDS,
            "write_timeout": settings.DB_TIMEOUT_SECONDS,
        },
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    """FastAPI依存関数: DBセッション取得"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def with_store_retry(db: Session, operation: Callable[[], T]) -> T:
    """冪等な操作 (読み取り・条件付きUPDATE) を1回だけリトライ。2回失敗したら StoreUnavailable"""
    try:
        return operation()
    except OperationalError as e:
        logger.warning(f"DB操作失敗→リトライ: {e}")
        db.rollback()
    try:
        return operation()
    except OperationalError as e:
        db.rollback()
        logger.error(f"DB操作リトライ失敗: {e}")
        raise StoreUnavailable() from e


def check_db_connection() -> bool:
    """DB接続チェック"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
