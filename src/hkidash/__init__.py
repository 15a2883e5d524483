"""
HKI Dashboard - administration backend for Intellectual Property Rights
(Hak Kekayaan Intelektual) filing records.

Staff create, filter, export and delete filing entries, maintain the
reference tables behind them, and manage admin accounts.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
