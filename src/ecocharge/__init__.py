# File: src/ecocharge/__init__.py
"""
EcoCharge reservation and pricing engine

Finds EV charging stations, prices and books charging sessions, and keeps
station ratings and user loyalty balances consistent with the bookings and
reviews behind them.
"""

__version__ = "1.0.0"
