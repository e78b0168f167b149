"""
smsledger - bank SMS transaction ledger.

Parses Indian bank/payment SMS into transactions, links them to the user's
accounts, discovers banks from an SMS inbox, and ingests transactions
without double counting.
"""

__version__ = "0.1.0"
