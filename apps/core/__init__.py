"""
Core app: users, stores, staff membership, announcements and shared utilities.
"""
