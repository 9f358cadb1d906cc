from __future__ import annotations
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from .utils import env

DEFAULT_BASE_URL = "https://bittrex.com/api/v1.1"


class Credentials(BaseModel):
    public_key: str = ""
    private_key: str = ""
    extra: str = ""   # unused by this exchange

    @classmethod
    def from_env(cls) -> "Credentials":
        load_dotenv()
        return cls(
            public_key=env("BITTREX_API_KEY"),
            private_key=env("BITTREX_API_SECRET"),
            extra=env("BITTREX_API_EXTRA"),
        )

    @property
    def present(self) -> bool:
        return bool(self.public_key and self.private_key)


class AdapterConfig(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    ping_address: str = "http://www.bittrex.com:80"
    polling_speed: int = Field(default=30, gt=0)          # seconds
    # seconds; also bounds the connect-retry window (BittrexClient.retry_budget)
    lock_timeout: float = Field(default=30.0, gt=0)
    settle_delay: float = Field(default=0.5, ge=0)        # seconds
    http_timeout: float = Field(default=10.0, gt=0)       # seconds
    max_retries: int = Field(default=3, ge=1)
    orderbook_depth: int = Field(default=50, gt=0)
    last_trades_count: int = Field(default=100, gt=0)
    trade_history_count: int = Field(default=1000, gt=0)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "AdapterConfig":
        """Build a config from ``BITTREX_*`` variables, after loading ``.env``.

        Unset variables keep their defaults; bad values raise ``ValidationError``.
        """
        load_dotenv(env_file)
        values = {}
        for name in cls.model_fields:
            raw = env(f"BITTREX_{name.upper()}")
            if raw != "":
                values[name] = raw
        return cls(**values)
