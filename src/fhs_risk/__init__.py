"""
Option-Book Risk Engine
========================
Black-Scholes-Merton Greeks, delta-normal VaR and Filtered Historical
Simulation VaR for a static book of equity-index options, driven by
GARCH(1,1) factor volatilities coupled through DCC correlation.

Author: Jose Orlando Bobadilla Fuentes, CQF
"""

__version__ = "1.0.0"
__author__ = "Jose Orlando Bobadilla Fuentes"
