"""Upload ordering tiers.

Uploads run in three strictly sequential tiers so that pages only go live
after the assets they reference, and manifests/hash files only after the
pages:

1. ``DEFAULT`` - everything else
2. ``HTML`` - ``.html``, ``.htm`` and ``.xml`` files
3. ``LAST`` - files matching a caller-supplied ``--upload-last`` pattern
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Protocol


class Tier(IntEnum):
    """Upload tiers, in execution order."""

    DEFAULT = 0
    HTML = 1
    LAST = 2

    @property
    def label(self) -> str:
        return {Tier.DEFAULT: "", Tier.HTML: "HTML/XML", Tier.LAST: "LAST"}[self]


class TierRule(Protocol):
    """Predicate deciding whether a key belongs to a tier."""

    tier: Tier

    def matches(self, key: str) -> bool: ...


@dataclass(frozen=True)
class UploadLastRule:
    """Matches keys whose file name equals a pattern, or that end with
    ``/<pattern>``. Both comparisons ignore case."""

    patterns: tuple[str, ...]
    tier: Tier = Tier.LAST

    def matches(self, key: str) -> bool:
        lowered = key.lower()
        file_name = lowered.rsplit("/", 1)[-1]
        for pattern in self.patterns:
            pattern = pattern.lower()
            if file_name == pattern or lowered.endswith("/" + pattern):
                return True
        return False


@dataclass(frozen=True)
class SuffixRule:
    """Matches keys ending with one of the given suffixes (case-insensitive)."""

    suffixes: tuple[str, ...] = (".html", ".htm", ".xml")
    tier: Tier = Tier.HTML

    def matches(self, key: str) -> bool:
        return key.lower().endswith(tuple(s.lower() for s in self.suffixes))


@dataclass
class TierClassifier:
    """Assigns keys to tiers; the first matching rule wins."""

    rules: list[TierRule] = field(default_factory=list)
    default: Tier = Tier.DEFAULT

    @classmethod
    def for_patterns(cls, upload_last: Iterable[str] = ()) -> "TierClassifier":
        """Standard rule set: upload-last patterns, then HTML/XML."""
        rules: list[TierRule] = []
        patterns = tuple(p for p in upload_last if p)
        if patterns:
            rules.append(UploadLastRule(patterns))
        rules.append(SuffixRule())
        return cls(rules=rules)

    def classify(self, key: str) -> Tier:
        for rule in self.rules:
            if rule.matches(key):
                return rule.tier
        return self.default
