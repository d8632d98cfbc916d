"""
Remote inference: provider clients and response normalization.
"""

from insight.ai.normalizer import LenientModel, ParseFailure, normalize
from insight.ai.providers import ChatProvider, ProviderConfig, build_providers

__all__ = [
    "LenientModel",
    "ParseFailure",
    "normalize",
    "ChatProvider",
    "ProviderConfig",
    "build_providers",
]
