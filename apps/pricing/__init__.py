"""
Pricing app: live metal prices, commission and service fees.
"""
