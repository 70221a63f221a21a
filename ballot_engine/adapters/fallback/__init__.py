# ballot_engine/adapters/fallback/__init__.py
from .static_resolver import DEFAULT_FALLBACK_POLLS, StaticFallbackResolver

__all__ = ["DEFAULT_FALLBACK_POLLS", "StaticFallbackResolver"]
