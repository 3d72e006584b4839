"""ShopBack gateway: request signing, validation and forwarding."""

from sbgateway.gateway.signer import Credentials, SignatureResult, Signer

__all__ = [
    "Credentials",
    "SignatureResult",
    "Signer",
]
