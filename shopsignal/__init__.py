"""
Shopsignal
==========

Customer interest and product viability scoring for a storefront.
"""

__version__ = "0.1.0"
