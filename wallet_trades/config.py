"""Configuration module for the Wallet Trades Analyzer."""

# Standard library imports
import os
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Optional

# Third-party library imports
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def get_env_var(key: str, default: Any = None, required: bool = False,
                validator: Optional[Callable[[str], Any]] = None) -> Any:
    """Get and validate environment variable.

    Args:
        key: Environment variable name
        default: Default value if not present
        required: If True, raises ValueError when not found
        validator: Optional validation function

    Returns:
        The environment variable value or default

    Raises:
        ValueError: If required and not found, or fails validation
    """
    value = os.environ.get(key)

    if value is None or value == "":
        if required:
            raise ValueError(f"Required environment variable '{key}' not found")
        return default

    if validator:
        try:
            return validator(value)
        except Exception as e:
            raise ValueError(f"Invalid value for environment variable '{key}': {str(e)}")

    return value


def bool_validator(value: str) -> bool:
    """Convert string to boolean."""
    return value.lower() in ("true", "1", "yes", "y", "on")


def int_validator(value: str) -> int:
    """Validate and convert string to integer.

    Raises:
        ValueError: If not a valid integer
    """
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"'{value}' is not a valid integer")


def float_validator(value: str) -> float:
    """Validate and convert string to float.

    Raises:
        ValueError: If not a valid number
    """
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"'{value}' is not a valid number")


def positive_float_validator(value: str) -> float:
    """Validate and convert string to a strictly positive float."""
    number = float_validator(value)
    if number <= 0:
        raise ValueError(f"'{value}' must be greater than zero")
    return number


def url_validator(value: str) -> str:
    """Validate URL format.

    Args:
        value: URL to validate

    Returns:
        The validated URL

    Raises:
        ValueError: If not a valid URL format
    """
    url_pattern = re.compile(
        r'^(https?):\/\/'  # http:// or https://
        r'(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+(?:[A-Z]{2,6}\.?|[A-Z0-9-]{2,}\.?)|'  # domain
        r'localhost|'  # localhost
        r'\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})'  # or IPv4
        r'(?::\d+)?'  # optional port
        r'(?:/?|[/?]\S+)$', re.IGNORECASE)

    if not url_pattern.match(value):
        raise ValueError(f"'{value}' is not a valid URL")
    return value


def log_level_validator(value: str) -> str:
    """Validate log level."""
    valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    upper_value = value.upper()
    if upper_value not in valid_levels:
        raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
    return upper_value


def environment_validator(value: str) -> str:
    """Validate environment name."""
    valid_environments = ("development", "testing", "staging", "production")
    if value.lower() not in valid_environments:
        raise ValueError(f"Environment must be one of: {', '.join(valid_environments)}")
    return value.lower()


@dataclass(frozen=True)
class SchedulerConfig:
    """Pacing configuration for one outbound API family.

    Immutable for the lifetime of the scheduler that receives it.
    """

    requests_per_second: float
    burst_capacity: int = 50
    adaptive_timing: bool = True

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.requests_per_second <= 0:
            raise ValueError(
                f"requests_per_second must be positive: {self.requests_per_second}"
            )
        if self.burst_capacity < 1:
            raise ValueError(f"burst_capacity must be at least 1: {self.burst_capacity}")

    @property
    def base_delay_ms(self) -> int:
        """Steady-state delay between two batches in milliseconds."""
        return int(1000 // self.requests_per_second)


@dataclass
class HeliusConfig:
    """Configuration for the Helius Solana RPC connection."""

    rpc_url: str
    api_key: Optional[str] = None
    timeout: float = 30.0
    scheduler: SchedulerConfig = field(
        default_factory=lambda: SchedulerConfig(requests_per_second=200, burst_capacity=50)
    )

    @property
    def endpoint(self) -> str:
        """RPC endpoint including the API key query parameter, if any."""
        if self.api_key and "api-key=" not in self.rpc_url:
            separator = "&" if "?" in self.rpc_url else "?"
            return f"{self.rpc_url}{separator}api-key={self.api_key}"
        return self.rpc_url


@lru_cache()
def get_helius_config() -> HeliusConfig:
    """Get Helius configuration from environment variables.

    Uses cached values for efficiency.

    Raises:
        ValueError: If environment variables fail validation
    """
    return HeliusConfig(
        rpc_url=get_env_var("HELIUS_RPC_URL", "https://mainnet.helius-rpc.com/",
                            validator=url_validator),
        api_key=get_env_var("HELIUS_API_KEY"),
        timeout=get_env_var("HELIUS_TIMEOUT", 30.0, validator=positive_float_validator),
        scheduler=SchedulerConfig(
            requests_per_second=get_env_var("HELIUS_RATE_LIMIT", 200.0,
                                            validator=positive_float_validator),
            burst_capacity=get_env_var("HELIUS_BURST_CAPACITY", 50, validator=int_validator),
            adaptive_timing=get_env_var("HELIUS_ADAPTIVE_TIMING", True, validator=bool_validator),
        ),
    )


@dataclass
class BirdeyeConfig:
    """Configuration for the Birdeye price history API."""

    api_base: str = "https://public-api.birdeye.so/defi"
    api_key: Optional[str] = None
    timeout: float = 15.0
    timeframe: str = "30m"
    scheduler: SchedulerConfig = field(
        default_factory=lambda: SchedulerConfig(requests_per_second=1, burst_capacity=50)
    )


@lru_cache()
def get_birdeye_config() -> BirdeyeConfig:
    """Get Birdeye configuration from environment variables."""
    return BirdeyeConfig(
        api_base=get_env_var("BIRDEYE_API_BASE", "https://public-api.birdeye.so/defi",
                             validator=url_validator),
        api_key=get_env_var("BIRDEYE_API_KEY"),
        timeout=get_env_var("BIRDEYE_TIMEOUT", 15.0, validator=positive_float_validator),
        timeframe=get_env_var("BIRDEYE_TIMEFRAME", "30m"),
        scheduler=SchedulerConfig(
            requests_per_second=get_env_var("BIRDEYE_RATE_LIMIT", 1.0,
                                            validator=positive_float_validator),
            burst_capacity=get_env_var("BIRDEYE_BURST_CAPACITY", 50, validator=int_validator),
            adaptive_timing=get_env_var("BIRDEYE_ADAPTIVE_TIMING", True, validator=bool_validator),
        ),
    )


@dataclass
class CacheConfig:
    """Configuration for caching."""

    price_cache_max_entries: int = 1000
    price_cache_evict_count: int = 500
    transaction_cache_size: int = 2048
    transaction_cache_ttl: int = 3600  # seconds, transactions are immutable


@lru_cache()
def get_cache_config() -> CacheConfig:
    """Get cache configuration from environment variables."""
    return CacheConfig(
        price_cache_max_entries=int(os.getenv("PRICE_CACHE_MAX_ENTRIES", "1000")),
        price_cache_evict_count=int(os.getenv("PRICE_CACHE_EVICT_COUNT", "500")),
        transaction_cache_size=int(os.getenv("TRANSACTION_CACHE_SIZE", "2048")),
        transaction_cache_ttl=int(os.getenv("TRANSACTION_CACHE_TTL", "3600")),
    )


@dataclass
class ServerConfig:
    """Configuration for the HTTP server."""

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"
    default_trade_limit: int = 5
    max_trade_limit: int = 100

    @property
    def bind_address(self) -> str:
        """Get the bind address for the server."""
        return f"{self.host}:{self.port}"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.environment not in ("development", "testing", "staging", "production"):
            raise ValueError(f"Invalid environment: {self.environment}")

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if not 1 <= self.default_trade_limit <= self.max_trade_limit:
            raise ValueError(
                f"default_trade_limit must be between 1 and {self.max_trade_limit}"
            )


@lru_cache()
def get_server_config() -> ServerConfig:
    """Get server configuration from environment variables.

    Raises:
        ValueError: If environment variables fail validation
    """
    return ServerConfig(
        host=get_env_var("HOST", "0.0.0.0"),
        port=get_env_var("PORT", 8000, validator=int_validator),
        debug=get_env_var("DEBUG", False, validator=bool_validator),
        environment=get_env_var("ENVIRONMENT", "development", validator=environment_validator),
        log_level=get_env_var("LOG_LEVEL", "INFO", validator=log_level_validator),
        default_trade_limit=get_env_var("DEFAULT_TRADE_LIMIT", 5, validator=int_validator),
        max_trade_limit=get_env_var("MAX_TRADE_LIMIT", 100, validator=int_validator),
    )
