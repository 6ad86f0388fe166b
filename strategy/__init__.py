"""
Pricing strategy package.
"""
from .pricing import BuyQuote, buy_quote, sell_price, target_proceeds, trailing_average

__all__ = ['BuyQuote', 'buy_quote', 'sell_price', 'target_proceeds', 'trailing_average']
