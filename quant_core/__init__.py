"""
Quantitative Market Analytics Engine
------------------------------------
Technical analysis, risk assessment, ensemble prediction and news sentiment
scoring over OHLCV bar series.
"""

__version__ = "0.1.0"
