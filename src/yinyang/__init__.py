"""Yinyang admin - lineage reporting over image-generation requests."""

__version__ = "0.3.0"

from yinyang.core.chain_cache import ChainCache, ChainsResult
from yinyang.core.config import YinyangConfig, config
from yinyang.core.models import GenerationRecord, ParentLink, Variant

__all__ = [
    "ChainCache",
    "ChainsResult",
    "GenerationRecord",
    "ParentLink",
    "Variant",
    "YinyangConfig",
    "config",
]
