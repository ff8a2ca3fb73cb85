"""
Inventory app: products, per-store stock, serialized bars and store-to-store transfers.
"""
