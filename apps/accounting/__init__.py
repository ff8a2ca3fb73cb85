"""
Store accounting: financial accounts, bank accounts and fund transfers between stores.
"""
