"""
Screenshot → Candidate Transactions → Duplicate Screening → Local Store

A deterministic, testable engine that turns text recognized from banking-app
screenshots into transactions with confidence scoring, screens them against
previously imported screenshots and transactions, and produces encrypted
backups of the whole dataset.
"""

__version__ = "0.1.0"
