"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal

from pydantic_settings import BaseSettings


class LedgerConfig(BaseSettings):
    """Banking ledger configuration"""

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Security configuration
    max_login_attempts: int = 3
    password_min_length: int = 4

    # Business rules configuration
    default_interest_rate: str = "0.03"
    default_overdraft_limit: str = "500.00"
    money_precision: int = 2

    # Feature flags
    enable_audit_logging: bool = True

    class Config:
        env_prefix = "LEDGER_"
        env_file = ".env"
        case_sensitive = False

    @property
    def interest_rate(self) -> Decimal:
        return Decimal(self.default_interest_rate)

    @property
    def overdraft_limit(self) -> Decimal:
        return Decimal(self.default_overdraft_limit)


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
