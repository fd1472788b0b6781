"""Tier detection and argument parsing.

Payload syntaxes, from simplest to richest:

- Tier 1 (positional): raw text, e.g. ``$say[hello]``
- Tier 2 (key-value): ``;``-separated segments, optionally ``key: value``,
  e.g. ``$data[action: set; key: x; value: 1]`` or ``$if[a == b;yes;no]``
- Tier 3 (structured): a JSON object or array, e.g. ``$loop[{"times": 3}]``

Detection is total: a malformed ``{...}``/``[...]`` literal degrades to tier 2
or 1 unless the parser is strict, in which case it raises ParseError.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from charmscript.foundation.errors import ErrorCode, ParseError
from charmscript.parsing.scanner import contains_top_level, split_top_level

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^\s*([A-Za-z_][\w.-]*)\s*:(.*)$", re.DOTALL)


class Tier(IntEnum):
    """Payload syntax tiers."""

    POSITIONAL = 1
    KEY_VALUE = 2
    STRUCTURED = 3


ALL_TIERS: frozenset[Tier] = frozenset(Tier)


def _looks_structured(text: str) -> bool:
    """Whether the text is one bracketed literal (its first bracket closes at the end)."""
    if not text or text[0] not in "{[" or text[-1] not in "}]":
        return False
    depth = 0
    for i, ch in enumerate(text):
        if ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return i == len(text) - 1
    return False


def detect_tier(payload: str | None) -> Tier:
    """Detect a payload's tier. Never raises.

    Examples:
        >>> detect_tier('{"a": 1}')
        <Tier.STRUCTURED: 3>
        >>> detect_tier("a == b; yes; no")
        <Tier.KEY_VALUE: 2>
        >>> detect_tier("hello")
        <Tier.POSITIONAL: 1>
    """
    if not payload or not payload.strip():
        return Tier.POSITIONAL
    text = payload.strip()
    if text[0] in "{[" and text[-1] in "}]":
        try:
            json.loads(text)
        except (ValueError, RecursionError):
            pass
        else:
            return Tier.STRUCTURED
    if contains_top_level(text, ":;"):
        return Tier.KEY_VALUE
    return Tier.POSITIONAL


def parse_key_value(payload: str, keys: tuple[str, ...] | None = None) -> dict[str | int, str]:
    """Parse a tier-2 payload into an ordered map.

    Segments with a ``key:`` prefix become named entries; every other segment
    is stored under its integer position. When ``keys`` is given, only those
    names are treated as keys so text like ``Result: yes`` stays positional.

    Examples:
        >>> parse_key_value("action: set; key: x; value: 1")
        {'action': 'set', 'key': 'x', 'value': '1'}
        >>> parse_key_value("a == b; yes; no")
        {0: 'a == b', 1: 'yes', 2: 'no'}
    """
    allowed = {k.lower() for k in keys} if keys else None
    result: dict[str | int, str] = {}
    for position, segment in enumerate(split_top_level(payload, ";")):
        match = _KEY_PATTERN.match(segment)
        if match and (allowed is None or match.group(1).lower() in allowed):
            result[match.group(1)] = match.group(2).strip()
        else:
            result[position] = segment.strip()
    return result


@dataclass(frozen=True, slots=True)
class ParsedPayload:
    """Result of tier parsing."""

    tier: Tier
    value: Any
    """None (empty), str (tier 1), dict (tier 2), or any JSON value (tier 3)."""

    detected: Tier
    """Tier the payload looked like before charm-specific degradation."""

    @property
    def degraded(self) -> bool:
        return self.tier != self.detected


@dataclass
class TierParser:
    """Parses payloads into structured arguments.

    Attributes:
        strict: Raise on malformed structured literals instead of degrading.
        fallbacks: Count of malformed literals that were degraded.
    """

    strict: bool = False
    fallbacks: int = field(default=0, init=False)

    def parse(
        self,
        payload: str | None,
        accepted: frozenset[Tier] = ALL_TIERS,
        keys: tuple[str, ...] | None = None,
        charm: str = "",
    ) -> ParsedPayload:
        """Parse a payload, degrading 3 -> 2 -> 1 to a tier the charm accepts.

        Raises:
            ParseError: In strict mode, for a ``{...}``/``[...]`` literal that
                is not valid JSON.
        """
        if payload is None or not payload.strip():
            return ParsedPayload(Tier.POSITIONAL, None, Tier.POSITIONAL)

        text = payload.strip()
        detected = detect_tier(text)

        if detected != Tier.STRUCTURED and _looks_structured(text):
            self._malformed(text, charm)

        tier = detected
        if tier == Tier.STRUCTURED and tier not in accepted:
            tier = Tier.KEY_VALUE if contains_top_level(text, ":;") else Tier.POSITIONAL
        if tier == Tier.KEY_VALUE and tier not in accepted:
            tier = Tier.POSITIONAL

        if tier == Tier.STRUCTURED:
            value: Any = json.loads(text)
        elif tier == Tier.KEY_VALUE:
            value = parse_key_value(text, keys)
        else:
            value = text

        if tier != detected:
            logger.debug("Payload of %s degraded from tier %d to %d", charm or "?", detected, tier)
        return ParsedPayload(tier, value, detected)

    def _malformed(self, text: str, charm: str) -> None:
        if self.strict:
            try:
                json.loads(text)
            except (ValueError, RecursionError) as e:
                raise ParseError(
                    ErrorCode.PARSE_INVALID_PAYLOAD,
                    context={"charm": charm or "?", "detail": str(e)},
                    cause=e,
                ) from e
        self.fallbacks += 1
        logger.debug("Malformed structured literal for %s, falling back: %.60s", charm or "?", text)
