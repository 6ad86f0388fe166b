"""
Exchange gateway implementations.
"""
from .ccxt_gateway import CcxtGateway
from .mock import PaperGateway

__all__ = ['CcxtGateway', 'PaperGateway']
