"""
sbgateway: ShopBack in-store payments gateway.

Accepts merchant point-of-sale requests, signs them with the ShopBack
SB1-HMAC-SHA256 scheme and forwards them to the ShopBack in-store API.
"""

__version__ = "1.0.0"
