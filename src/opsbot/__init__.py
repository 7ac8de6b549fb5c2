"""
Opsbot Search and Integration Layer

Type-ahead search over the CRM, the client task system and the spreadsheet
database that back the operations bot's intake forms, plus the API clients
those searches and the form submissions go through.
"""

__version__ = "0.1.0"
__description__ = "Cross-system search and cache layer for the operations bot"
