"""
Core package initialization.
"""
from .interfaces import ExchangeGateway
from .exceptions import GatewayError, MalformedResponse, PricingUndefined, InsufficientFunds

__all__ = [
    'ExchangeGateway',
    'GatewayError',
    'MalformedResponse',
    'PricingUndefined',
    'InsufficientFunds'
]
