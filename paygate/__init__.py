"""
Paygate - settlement gate for pay-per-call APIs.

Confirms native-token payments on EVM test networks before paid work is released.
"""

from .payments import PaymentVerifier, Verdict, VerificationCode, resolve_network_config

try:
    from importlib.metadata import version

    __version__ = version("paygate")
except Exception:
    __version__ = "0.0.0"

__all__ = ["PaymentVerifier", "Verdict", "VerificationCode", "resolve_network_config"]
