"""
Wallets app: fiat wallets, digital metal balances and transfers between customers.
"""
