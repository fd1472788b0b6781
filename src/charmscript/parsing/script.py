"""Compiled script bodies.

A script is compiled once into segments, each either ``Literal`` text or a
``ParsedInvocation``. The engine is the only thing that turns a ScriptBody
into a value; the ``kind`` decides how:

- ``text``: no invocations, the interpolated text
- ``single``: one invocation with only whitespace around it, its raw value
- ``sequence``: invocations separated by whitespace or ``;``, the last value
- ``template``: anything else, text with each result spliced in
"""

from dataclasses import dataclass
from functools import lru_cache

from charmscript.parsing.scanner import find_invocations


@dataclass(frozen=True, slots=True)
class Literal:
    """Plain text between invocations."""

    text: str


@dataclass(frozen=True, slots=True)
class ParsedInvocation:
    """One ``$name[payload]`` occurrence."""

    name: str
    payload: str

    @property
    def source(self) -> str:
        return f"${self.name}[{self.payload}]"


Segment = Literal | ParsedInvocation


@dataclass(frozen=True, slots=True)
class ScriptBody:
    """A compiled script: the source text and its segments."""

    source: str
    segments: tuple[Segment, ...]

    @property
    def invocations(self) -> tuple[ParsedInvocation, ...]:
        return tuple(s for s in self.segments if isinstance(s, ParsedInvocation))

    @property
    def kind(self) -> str:
        invocations = self.invocations
        if not invocations:
            return "text"
        glue = [s.text for s in self.segments if isinstance(s, Literal)]
        if len(invocations) == 1 and all(not t.strip() for t in glue):
            return "single"
        if all(not t.replace(";", "").strip() for t in glue):
            return "sequence"
        return "template"

    def __str__(self) -> str:
        return self.source


@lru_cache(maxsize=1024)
def compile_script(source: str) -> ScriptBody:
    """Compile script text into segments.

    Raises:
        ParseError: For an unterminated invocation.
    """
    segments: list[Segment] = []
    cursor = 0
    for span in find_invocations(source):
        if span.start > cursor:
            segments.append(Literal(source[cursor:span.start]))
        segments.append(ParsedInvocation(span.name, span.payload))
        cursor = span.end
    if cursor < len(source):
        segments.append(Literal(source[cursor:]))
    return ScriptBody(source, tuple(segments))
