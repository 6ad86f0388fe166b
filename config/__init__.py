"""
Configuration package initialization.
"""
from .schema import Config, ConfigError, TradingConfig, load_config, validate_config

__all__ = ['Config', 'ConfigError', 'TradingConfig', 'load_config', 'validate_config']
