# ballot_engine/adapters/fallback/static_resolver.py
import json
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

import structlog

from ballot_engine.core.domain.fallback import FallbackPoll

logger = structlog.get_logger()

DEFAULT_FALLBACK_POLLS = (
    FallbackPoll(
        poll_id=1,
        title="Alice vs Bob — Public Policy Preference Poll",
        description=(
            "D21 Voting System Demo - Cast up to 2 positive and 1 negative votes. "
            "Choose your preferred policies across 5 key areas: education, security, "
            "healthcare, defense, and taxes."
        ),
        name="Alice vs Bob — Public Policy Preferences",
        max_positive=2,
        max_negative=1,
        candidates=(
            "Alice - Education", "Alice - Security", "Alice - Healthcare",
            "Alice - Defense", "Alice - Taxes",
            "Bob - Education", "Bob - Security", "Bob - Healthcare",
            "Bob - Defense", "Bob - Taxes",
        ),
    ),
    FallbackPoll(
        poll_id=2,
        title="Tech vs Environment Policy Debate",
        description=(
            "D21 Voting Demo - Cast up to 3 positive and 1 negative votes. "
            "This poll is not yet initialized on-chain."
        ),
        name="Tech vs Environment Policy Debate",
        max_positive=3,
        max_negative=1,
        candidates=(
            "Tech Innovation Focus",
            "Environmental Protection",
            "Balanced Approach",
            "Economic Growth Priority",
            "Renewable Energy Push",
        ),
    ),
)


def _poll_from_dict(raw: Mapping[str, Any]) -> FallbackPoll:
    name = raw.get("name") or raw["title"]
    return FallbackPoll(
        poll_id=int(raw["pollId"]),
        title=raw["title"],
        description=raw.get("description", ""),
        name=name,
        max_positive=int(raw["plusVotesAllowed"]),
        max_negative=int(raw["minusVotesAllowed"]),
        candidates=tuple(raw["candidates"]),
    )


class StaticFallbackResolver:
    """
    Fixed table of demo polls keyed by poll id.

    The table can be replaced by a JSON file holding a list of objects shaped
    like the GET response (`pollId`, `title`, `plusVotesAllowed`,
    `minusVotesAllowed`, `candidates`, ...).
    """

    def __init__(self, polls: Iterable[FallbackPoll] = DEFAULT_FALLBACK_POLLS, enabled: bool = True):
        self.enabled = enabled
        self._polls: Dict[int, FallbackPoll] = {p.poll_id: p for p in polls}

    @classmethod
    def from_settings(cls, enabled: bool, polls_file: Optional[str] = None) -> "StaticFallbackResolver":
        if not polls_file:
            return cls(enabled=enabled)
        return cls.from_file(polls_file, enabled=enabled)

    @classmethod
    def from_file(cls, path: str, enabled: bool = True) -> "StaticFallbackResolver":
        with Path(path).open("r", encoding="utf-8") as fh:
            raw = json.load(fh)
        polls = [_poll_from_dict(entry) for entry in raw]
        logger.info("fallback_polls_loaded", path=path, count=len(polls))
        return cls(polls, enabled=enabled)

    def resolve(self, poll_id: int) -> Optional[FallbackPoll]:
        if not self.enabled:
            return None
        return self._polls.get(poll_id)
