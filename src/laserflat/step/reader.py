"""Reader for the ISO 10303-21 clear-text encoding ("STEP Part 21").

The reader turns the file into an entity table without interpreting any
schema: every ``#id = NAME(params);`` instance becomes an
:class:`EntityInstance` holding one or more ``(name, params)`` parts.
Complex instances (``#id = (A(...) B(...));``) keep all of their parts.

Parameter values map onto Python values as follows:

=================  =====================================
``$``              ``None``
``*``              :data:`DERIVED`
``.T.`` / ``.F.``  ``True`` / ``False``
``.U.``            ``None``
``.NAME.``         :class:`Enumeration`
``'text'``         ``str`` (``''`` unescaped to ``'``)
``#12``            :class:`Reference`
``1.5E-3``, ``2``  ``float`` / ``int``
``(a, b)``         ``tuple``
``NAME(v)``        :class:`TypedParameter`
=================  =====================================
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from laserflat.errors import StepParseError

_WHITESPACE = re.compile(r"\s+")
_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_KEYWORD = re.compile(r"!?[A-Za-z_][A-Za-z0-9_]*(?:-[A-Za-z0-9_]+)*")
_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[Ee][+-]?\d+)?")
_ENUMERATION = re.compile(r"\.([A-Za-z_][A-Za-z0-9_]*)\.")
_INSTANCE_ID = re.compile(r"#(\d+)")
_BINARY = re.compile(r'"[0-9A-Fa-f]*"')


class Reference(int):
    """Reference to another entity instance (``#id``)."""

    def __repr__(self) -> str:
        return f"#{int(self)}"


class Enumeration(str):
    """Enumeration value such as ``.UNSPECIFIED.`` (stored without the dots)."""

    def __repr__(self) -> str:
        return f".{str(self)}."


class _Derived:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "*"


DERIVED = _Derived()


@dataclass(frozen=True)
class TypedParameter:
    type_name: str
    value: Any


@dataclass(frozen=True)
class EntityPart:
    name: str
    params: Tuple[Any, ...]


@dataclass(frozen=True)
class EntityInstance:
    id: int
    parts: Tuple[EntityPart, ...]

    @property
    def is_complex(self) -> bool:
        return len(self.parts) > 1

    @property
    def name(self) -> str:
        """Entity keyword of a simple instance; for complex ones the first part."""
        return self.parts[0].name

    @property
    def params(self) -> Tuple[Any, ...]:
        return self.parts[0].params

    @property
    def type_names(self) -> Tuple[str, ...]:
        return tuple(part.name for part in self.parts)

    def has_type(self, name: str) -> bool:
        return any(part.name == name for part in self.parts)

    def part(self, name: str) -> Optional[EntityPart]:
        for p in self.parts:
            if p.name == name:
                return p
        return None


@dataclass
class StepFile:
    header: List[EntityPart] = field(default_factory=list)
    instances: Dict[int, EntityInstance] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.instances)

    def get(self, ref) -> Optional[EntityInstance]:
        if ref is None or isinstance(ref, bool):
            return None
        try:
            return self.instances.get(int(ref))
        except (TypeError, ValueError):
            return None

    def of_type(self, name: str) -> Iterator[EntityInstance]:
        """Instances having ``name`` as one of their parts, in file order."""
        for inst in self.instances.values():
            if inst.has_type(name):
                yield inst


class Part21Reader:
    """Single-pass reader over the text of a STEP file.

    Usage:
        step = Part21Reader(text).read()
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    # --- low level scanning ---

    def _error(self, message: str, pos: Optional[int] = None) -> StepParseError:
        if pos is None:
            pos = self.pos
        line = self.text.count("\n", 0, pos) + 1
        return StepParseError(message, offset=pos, line=line)

    def _skip(self) -> None:
        while self.pos < len(self.text):
            m = _WHITESPACE.match(self.text, self.pos)
            if m:
                self.pos = m.end()
                continue
            if self.text.startswith("/*", self.pos):
                m = _COMMENT.match(self.text, self.pos)
                if not m:
                    raise self._error("unterminated comment")
                self.pos = m.end()
                continue
            break

    def _at_end(self) -> bool:
        return self.pos >= len(self.text)

    def _peek(self) -> str:
        if self.pos >= len(self.text):
            return ""
        return self.text[self.pos]

    def _expect(self, char: str) -> None:
        self._skip()
        if self._peek() != char:
            found = self._peek() or "end of file"
            raise self._error(f"expected '{char}', found '{found}'")
        self.pos += 1

    def _keyword(self) -> str:
        self._skip()
        m = _KEYWORD.match(self.text, self.pos)
        if not m:
            found = self._peek() or "end of file"
            raise self._error(f"expected keyword, found '{found}'")
        self.pos = m.end()
        return m.group(0).upper()

    # --- values ---

    def _string(self) -> str:
        start = self.pos
        self.pos += 1
        chunks = []
        while True:
            end = self.text.find("'", self.pos)
            if end < 0:
                raise self._error("unterminated string", start)
            chunks.append(self.text[self.pos:end])
            if self.text.startswith("''", end):
                chunks.append("'")
                self.pos = end + 2
                continue
            self.pos = end + 1
            return "".join(chunks)

    def _list(self) -> Tuple[Any, ...]:
        self._expect("(")
        values = []
        self._skip()
        if self._peek() == ")":
            self.pos += 1
            return tuple(values)
        while True:
            values.append(self._value())
            self._skip()
            c = self._peek()
            if c == ",":
                self.pos += 1
                continue
            if c == ")":
                self.pos += 1
                return tuple(values)
            raise self._error(f"expected ',' or ')', found '{c or 'end of file'}'")

    def _value(self) -> Any:
        self._skip()
        c = self._peek()
        if c == "$":
            self.pos += 1
            return None
        if c == "*":
            self.pos += 1
            return DERIVED
        if c == "'":
            return self._string()
        if c == "(":
            return self._list()
        if c == "#":
            m = _INSTANCE_ID.match(self.text, self.pos)
            if not m:
                raise self._error("malformed instance reference")
            self.pos = m.end()
            return Reference(int(m.group(1)))
        if c == '"':
            m = _BINARY.match(self.text, self.pos)
            if not m:
                raise self._error("malformed binary literal")
            self.pos = m.end()
            return m.group(0)[1:-1]
        if c == ".":
            m = _ENUMERATION.match(self.text, self.pos)
            if m:
                self.pos = m.end()
                return _enumeration(m.group(1))
        if c and (c.isdigit() or c in "+-."):
            m = _NUMBER.match(self.text, self.pos)
            if not m:
                raise self._error(f"malformed number near '{c}'")
            self.pos = m.end()
            token = m.group(0)
            if "." in token or "e" in token or "E" in token:
                return float(token)
            return int(token)
        if c.isalpha() or c == "_" or c == "!":
            name = self._keyword()
            params = self._list()
            return TypedParameter(name, params[0] if len(params) == 1 else params)
        raise self._error(f"unexpected character '{c or 'end of file'}'")

    # --- instances and sections ---

    def _instance(self) -> EntityInstance:
        start = self.pos
        m = _INSTANCE_ID.match(self.text, self.pos)
        if not m:
            raise self._error("malformed instance name")
        self.pos = m.end()
        inst_id = int(m.group(1))
        self._expect("=")
        self._skip()
        parts = []
        if self._peek() == "(":
            self.pos += 1
            while True:
                self._skip()
                if self._peek() == ")":
                    self.pos += 1
                    break
                if self._at_end():
                    raise self._error("unterminated complex instance", start)
                name = self._keyword()
                parts.append(EntityPart(name, self._list()))
            if not parts:
                raise self._error(f"complex instance #{inst_id} has no parts", start)
        else:
            name = self._keyword()
            parts.append(EntityPart(name, self._list()))
        self._expect(";")
        return EntityInstance(inst_id, tuple(parts))

    def read(self) -> StepFile:
        step = StepFile()
        if self.text.startswith("\ufeff"):
            self.pos = 1
        self._skip()
        if self._keyword() != "ISO-10303-21":
            raise self._error("not an ISO-10303-21 file", 0)
        self._expect(";")

        section = None
        while True:
            self._skip()
            if self._at_end():
                break
            if self._peek() == "#":
                if section != "DATA":
                    raise self._error("entity instance outside DATA section")
                inst = self._instance()
                if inst.id in step.instances:
                    raise self._error(f"duplicate instance #{inst.id}")
                step.instances[inst.id] = inst
                continue

            keyword = self._keyword()
            if keyword == "HEADER":
                section = "HEADER"
            elif keyword == "DATA":
                self._skip()
                if self._peek() == "(":
                    self._list()
                section = "DATA"
            elif keyword == "ENDSEC":
                section = None
            elif keyword == "END-ISO-10303-21":
                self._skip()
                if self._peek() == ";":
                    self.pos += 1
                break
            elif section == "HEADER":
                step.header.append(EntityPart(keyword, self._list()))
            else:
                raise self._error(f"unexpected keyword '{keyword}'")
            self._expect(";")
        return step


def _enumeration(name: str):
    upper = name.upper()
    if upper == "T":
        return True
    if upper == "F":
        return False
    if upper == "U":
        return None
    return Enumeration(upper)


def read_step(text: str) -> StepFile:
    """Parse the text of a STEP file into a :class:`StepFile`."""

    return Part21Reader(text).read()


__all__ = [
    'Reference',
    'Enumeration',
    'DERIVED',
    'TypedParameter',
    'EntityPart',
    'EntityInstance',
    'StepFile',
    'Part21Reader',
    'read_step',
]
