from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """アプリケーション設定"""

    # データベース
    DATABASE_URL: str = "mysql+pymysql://saverly:saverly@db:3306/saverly?charset=utf8mb4"
    DB_TIMEOUT_SECONDS: int = 10

    # 引き換え
    REDEMPTION_WINDOW_SECONDS: int = 60
    CODE_GENERATION_MAX_ATTEMPTS: int = 5

    # スケジューラ
    SWEEP_INTERVAL_SECONDS: int = 300
    SCHEDULER_TIMEZONE: str = "UTC"

    # サービス設定
    SITE_NAME: str = "Saverly"
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # 環境
    ENV: str = "development"
    DEBUG: bool = True

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
