"""
Indentation units, and the synthetic line breaks built from them.

It is not recommended to indent with anything other than spaces or tabs,
but nothing prevents it: a custom unit may be any string, including an
empty or a multi-character one.
"""
from abc import ABC, abstractmethod


class Indentation(ABC):

    @abstractmethod
    def render(self, level: int) -> str:
        """Return the indentation for `level` nesting levels."""
        pass

    def is_blank(self) -> bool:
        """True if rendered indentation is only ASCII whitespace."""
        return self.render(1).strip(" \t\n\r\x0b\x0c") == ""

    def __eq__(self, other):
        """Same kind of indentation, same unit: `Default() != Custom("  ")`."""
        return type(self) is type(other) and self.render(1) == other.render(1)

    def __hash__(self):
        return hash((type(self), self.render(1)))


class Default(Indentation):
    """Two spaces per level."""

    UNIT = "  "

    def render(self, level: int) -> str:
        return self.UNIT * level

    def __repr__(self):
        return "Default()"


class Custom(Indentation):

    def __init__(self, unit: str):
        self.unit = unit

    def render(self, level: int) -> str:
        return self.unit * level

    def __repr__(self):
        return f"Custom({self.unit!r})"


DEFAULT = Default()


def line_break(out: bytearray, level: int, indentation: Indentation) -> None:
    """Append a newline, then `level` indentation units, to `out`."""
    out += b"\n"
    out += indentation.render(level).encode("utf-8")
