from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    env: str = "local"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./marketplace.db"

    # session tokens are issued by the managed auth service
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = None

    paystack_secret_key: str
    paystack_public_key: str = ""
    paystack_base_url: str = "https://api.paystack.co"
    paystack_callback_url: str = "http://localhost:3000/payment/callback"

    support_phone: str = ""
    currency: str = "NGN"
    min_withdrawal: float = 5000

    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"


settings = Settings()
