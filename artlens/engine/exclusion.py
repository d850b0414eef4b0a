"""Declarative source exclusion: drop candidates from denylisted platforms.

A rule names the record fields to inspect and the substrings that disqualify a record.
Adding a platform means adding a rule (in code defaults or in the `excluded_platforms`
config list), never a new branch.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from artlens.core.config import DEFAULT_EXCLUDED_PLATFORMS, ExclusionRuleConfig
from artlens.engine.candidates import CandidateArtwork

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExclusionRule:
    name: str
    fields: tuple[str, ...]
    patterns: tuple[str, ...]

    def matches(self, candidate: CandidateArtwork) -> bool:
        lowered = tuple(p.lower() for p in self.patterns)
        for value in _field_values(candidate, self.fields):
            text = value.lower()
            if any(p in text for p in lowered):
                return True
        return False


def _field_values(candidate: CandidateArtwork, fields: Iterable[str]) -> list[str]:
    """Values of the named fields from the raw record and the normalized candidate."""
    values: list[str] = []
    for field in fields:
        for value in (candidate.raw.get(field), getattr(candidate, field, None)):
            if isinstance(value, str):
                values.append(value)
            elif isinstance(value, list):
                values.extend(v for v in value if isinstance(v, str))
    return values


def rules_from_config(entries: Iterable[ExclusionRuleConfig | dict[str, Any]]) -> list[ExclusionRule]:
    rules = []
    for entry in entries:
        cfg = entry if isinstance(entry, ExclusionRuleConfig) else ExclusionRuleConfig(**entry)
        rules.append(ExclusionRule(name=cfg.name, fields=tuple(cfg.fields), patterns=tuple(cfg.patterns)))
    return rules


DEFAULT_RULES: list[ExclusionRule] = rules_from_config(DEFAULT_EXCLUDED_PLATFORMS)


def excluded_by(candidate: CandidateArtwork, rules: Iterable[ExclusionRule]) -> str | None:
    """Name of the first rule that excludes the candidate, or None."""
    for rule in rules:
        if rule.matches(candidate):
            return rule.name
    return None


def apply_exclusions(
    candidates: list[CandidateArtwork],
    rules: Iterable[ExclusionRule],
) -> list[CandidateArtwork]:
    """Stable filter removing excluded candidates."""
    rules = list(rules)
    kept: list[CandidateArtwork] = []
    for candidate in candidates:
        rule = excluded_by(candidate, rules)
        if rule is None:
            kept.append(candidate)
        else:
            _log.debug("Excluded %s (%s) by rule %s", candidate.id, candidate.title, rule)
    if len(kept) < len(candidates):
        _log.info("Exclusion rules dropped %s of %s candidates", len(candidates) - len(kept), len(candidates))
    return kept
