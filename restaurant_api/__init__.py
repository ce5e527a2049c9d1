"""
                Restaurant Ordering API

Backend for a restaurant ordering application: a food catalog with
tracked stock, an order ledger, and the consistency rules between them.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
