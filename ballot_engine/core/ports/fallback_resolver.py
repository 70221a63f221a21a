# ballot_engine/core/ports/fallback_resolver.py
from typing import Optional, Protocol

from ballot_engine.core.domain.fallback import FallbackPoll


class IFallbackResolver(Protocol):
    """
    Port for demo-mode poll definitions.
    Implementations:
    - StaticFallbackResolver (built-in table, optionally loaded from JSON)
    """

    enabled: bool

    def resolve(self, poll_id: int) -> Optional[FallbackPoll]:
        """Returns the fallback definition for `poll_id`, or None if there is none."""
        ...
