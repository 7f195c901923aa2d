"""
Promo Pricing Package

Promotion-aware pricing for vendor storefronts and point-of-sale.
Resolves the price a customer pays using Base Price → Best Promotion → Final Price,
with tier (quantity break) pricing driven by vendor pricing blueprints.
"""

__version__ = "1.0.0"
