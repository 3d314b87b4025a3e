"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./deposits.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None
    # seconds a SQLite writer waits for an overlapping cycle to release the file lock
    busy_timeout: float = 30.0


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class TronSettings(BaseModel):
    """TronGrid indexer used for the TRC20 network."""

    api_url: str = "https://api.trongrid.io"
    api_key: Optional[str] = None
    page_size: int = Field(default=50, ge=1, le=200)
    token_decimals: int = 6
    request_timeout: float = Field(default=15.0, gt=0)


class EvmSettings(BaseModel):
    """JSON-RPC endpoint used for the BEP20 network."""

    rpc_url: str = "https://bsc-dataseed1.binance.org/"
    token_decimals: int = 18
    chunk_size: int = Field(default=1000, ge=1)
    request_timeout: float = Field(default=15.0, gt=0)


class ChainSettings(BaseModel):
    tron: TronSettings = TronSettings()
    bsc: EvmSettings = EvmSettings()


class ReconcilerSettings(BaseModel):
    poll_interval: float = Field(default=30.0, gt=0)
    amount_tolerance: float = Field(default=0.05, ge=0, lt=1)
    confirmation_batch_size: int = Field(default=50, ge=1)
    default_min_confirmations: int = Field(default=12, ge=0)
    intent_ttl_hours: int = Field(default=24, ge=1)
    network_timeout: float = Field(default=120.0, gt=0)
    # 0 drains every chunk up to the head captured at cycle start
    max_chunks_per_cycle: int = Field(default=0, ge=0)
    parallel_networks: bool = False
    run_in_app: bool = False


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Deposit Reconciliation Engine"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    logging: LoggingSettings = LoggingSettings()
    chains: ChainSettings = ChainSettings()
    reconciler: ReconcilerSettings = ReconcilerSettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def poll_interval(self) -> float:
        return self.reconciler.poll_interval


@lru_cache()
def get_settings() -> Settings:
    return Settings()
