"""
Configuration Management Module

Provides centralized terminal configuration using pydantic-settings.
Defaults are the terminal's security and business constants; each can be
overridden through SECURE_ATM_* environment variables or a .env file.
"""

from decimal import Decimal
from pydantic_settings import BaseSettings


class ATMConfig(BaseSettings):
    """Secure ATM terminal configuration"""
    
    # Credential configuration
    pin_length: int = 4
    salt_length: int = 16  # bytes
    max_pin_attempts: int = 3
    lockout_duration_seconds: int = 900  # 15 minutes
    
    # Session configuration
    session_timeout_seconds: int = 300  # 5 minutes
    max_transactions_per_session: int = 5
    
    # Business rules configuration
    max_daily_withdrawal: Decimal = Decimal("5000.00")
    max_daily_transfer: Decimal = Decimal("10000.00")
    min_balance: Decimal = Decimal("500.00")
    max_transaction_amount: Decimal = Decimal("50000.00")
    currency: str = "USD"
    
    # Ledger configuration
    max_accounts: int = 3
    max_transaction_history: int = 100
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    
    # Feature flags
    enable_audit_logging: bool = True
    
    class Config:
        env_prefix = "SECURE_ATM_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = ATMConfig()


def get_config() -> ATMConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> ATMConfig:
    """Reload configuration from environment"""
    global config
    config = ATMConfig()
    return config
