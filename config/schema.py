"""
Configuration schema validation.
"""
import os
import re
from decimal import Decimal
from typing import Any, Dict, Optional

import ccxt
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

API_KEY_ENV = "EXCHANGE_API_KEY"
API_SECRET_ENV = "EXCHANGE_API_SECRET"


class ConfigError(Exception):
    """Custom exception for configuration validation errors."""
    pass


class ExchangeConfig(BaseModel):
    """Exchange configuration schema."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field("exmo", description="ccxt exchange id")
    api_key: str = Field("", description="API key")
    api_secret: str = Field("", description="API secret")
    paper_trading: bool = Field(True, description="Trade against the in-memory paper exchange")
    timeout_ms: int = Field(10000, gt=0, description="Per-request timeout enforced by the exchange client")

    @field_validator('name')
    @classmethod
    def validate_exchange_name(cls, v):
        if v.lower() not in ccxt.exchanges:
            raise ValueError(f"Invalid exchange name: {v}")
        return v.lower()


class TradingConfig(BaseModel):
    """Order lifecycle parameters for the tracked pair."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    currency_a: str = Field(..., description="Currency being bought and sold")
    currency_b: str = Field(..., description="Currency prices are quoted in")
    fee_rate: Decimal = Field(..., ge=0, lt=1, description="Exchange fee rate per trade")
    profit_margin: Decimal = Field(..., ge=0, lt=1, description="Target profit margin")
    order_max_age_minutes: float = Field(..., gt=0, description="Age after which an unfilled buy is cancelled")
    spend_limit: Decimal = Field(..., gt=0, description="Amount of currency B committed per buy")
    avg_price_window_minutes: float = Field(..., gt=0, description="Trailing-average window")
    exchange_time_offset_hours: float = Field(0.0, description="Offset of the exchange clock from local UTC")
    poll_interval_seconds: float = Field(60.0, gt=0, description="Delay between cycle completions")

    @field_validator('currency_a', 'currency_b')
    @classmethod
    def validate_currency(cls, v):
        if not re.match(r'^[A-Z0-9]+$', v):
            raise ValueError(f"Invalid currency code: {v}")
        return v

    @model_validator(mode='after')
    def validate_pair_and_margins(self):
        if self.currency_a == self.currency_b:
            raise ValueError("currency_a and currency_b must differ")
        if self.fee_rate + self.profit_margin >= 1:
            raise ValueError("fee_rate + profit_margin must be below 1")
        return self

    @property
    def pair(self) -> str:
        return f"{self.currency_a}/{self.currency_b}"

    @property
    def margin(self) -> Decimal:
        """Combined fee and profit rate applied to every price."""
        return self.fee_rate + self.profit_margin

    @property
    def order_max_age_seconds(self) -> float:
        return self.order_max_age_minutes * 60

    @property
    def avg_price_window_seconds(self) -> float:
        return self.avg_price_window_minutes * 60


class PaperConfig(BaseModel):
    """Settings of the simulated exchange used for paper trading."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    base_price: Decimal = Field(Decimal("50000"), gt=0, description="Starting ask price")
    volatility: float = Field(0.002, ge=0.0, le=1.0, description="Per-step price volatility")
    trend: float = Field(0.0, ge=-1.0, le=1.0, description="Price trend bias")
    balances: Dict[str, Decimal] = Field(default_factory=dict, description="Starting balances")
    min_quantity: Decimal = Field(Decimal("0.0001"), ge=0, description="Minimum order quantity")
    seed: Optional[int] = Field(None, description="Random seed for reproducible runs")


class LoggingConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = Field("INFO", description="Logging level")
    log_dir: str = Field("logs", description="Directory for rotating log files")
    max_bytes: int = Field(1024 * 1024, gt=0)
    backup_count: int = Field(5, ge=0)

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


class Config(BaseModel):
    """Main configuration schema."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    exchange: ExchangeConfig = Field(default_factory=ExchangeConfig)
    trading: TradingConfig
    paper: PaperConfig = Field(default_factory=PaperConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode='after')
    def validate_credentials(self):
        if not self.exchange.paper_trading and not (self.exchange.api_key and self.exchange.api_secret):
            raise ValueError("Live trading requires api_key and api_secret")
        return self


def _format_errors(e: ValidationError) -> str:
    error_messages = ["Invalid configuration"]
    missing_fields = []

    for error in e.errors():
        loc = '.'.join(str(x) for x in error['loc'])
        if error['type'] == 'missing':
            missing_fields.append(loc)
        elif loc:
            error_messages.append(f"{loc}: {error['msg']}")
        else:
            error_messages.append(error['msg'])

    if missing_fields:
        error_messages.append("Missing required fields: " + ", ".join(missing_fields))

    return "\n".join(error_messages)


def _apply_credentials(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Fill empty credentials from the environment."""
    exchange = dict(config_dict.get('exchange') or {})
    if not exchange.get('api_key') and os.getenv(API_KEY_ENV):
        exchange['api_key'] = os.getenv(API_KEY_ENV)
    if not exchange.get('api_secret') and os.getenv(API_SECRET_ENV):
        exchange['api_secret'] = os.getenv(API_SECRET_ENV)
    return {**config_dict, 'exchange': exchange}


def validate_config(config_dict: Dict[str, Any]) -> Config:
    """Validate configuration dictionary."""
    if not isinstance(config_dict, dict):
        raise ConfigError("Invalid configuration\nConfiguration must be a mapping")
    try:
        return Config.model_validate(config_dict)
    except ValidationError as e:
        raise ConfigError(_format_errors(e)) from e


def load_config(config_path: str, env_file: Optional[str] = None) -> Config:
    """Load and validate configuration from YAML file.

    Credentials left empty in the file are taken from ``EXCHANGE_API_KEY`` and
    ``EXCHANGE_API_SECRET``, read from the environment or a ``.env`` file.
    """
    load_dotenv(env_file)
    try:
        with open(config_path, 'r') as f:
            config_dict = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading config: {str(e)}") from e

    if not isinstance(config_dict, dict):
        raise ConfigError(f"Error loading config: {config_path} does not contain a mapping")
    return validate_config(_apply_credentials(config_dict))
