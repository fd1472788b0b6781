"""Script parsing: scanning, tier detection, compilation and interpolation."""

from charmscript.parsing.interpolate import MISSING, interpolate, interpolate_text
from charmscript.parsing.scanner import InvocationSpan, find_invocations, split_top_level
from charmscript.parsing.script import Literal, ParsedInvocation, ScriptBody, compile_script
from charmscript.parsing.tiers import (
    ALL_TIERS,
    ParsedPayload,
    Tier,
    TierParser,
    detect_tier,
    parse_key_value,
)

__all__ = [
    "ALL_TIERS",
    "InvocationSpan",
    "Literal",
    "MISSING",
    "ParsedInvocation",
    "ParsedPayload",
    "ScriptBody",
    "Tier",
    "TierParser",
    "compile_script",
    "detect_tier",
    "find_invocations",
    "interpolate",
    "interpolate_text",
    "parse_key_value",
    "split_top_level",
]
