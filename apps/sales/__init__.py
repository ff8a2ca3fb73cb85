"""
Sales app: point of sale, marketplace orders, cash drawer and transaction receipts.
"""
