"""
Check that formatting only touched whitespace.

Both texts are split into lexemes with the PEG grammar; whitespace lexemes
are dropped, and atoms which only whitespace kept apart are merged, since
the formatter glues them together.
"""
import logging
from typing import List, Tuple

from parsimonious import NodeVisitor

from .grammar import grammar

log = logging.getLogger("nufmt:verify")

Lexeme = Tuple[str, str]


class LexemeVisitor(NodeVisitor):
    """Turn a Parsimonious parse tree into a flat list of lexemes."""

    WHITESPACE_TOKEN = object()  # Sentinel value

    def visit__(self, node, children) -> object:
        """Replace whitespaces with an easy-to-filter sentinel value."""
        return self.WHITESPACE_TOKEN

    def visit_source(self, node, children) -> List[Lexeme]:
        acc = []
        for lexeme in children:
            if lexeme is self.WHITESPACE_TOKEN:
                continue
            if acc and lexeme[0] == "atom" and acc[-1][0] == "atom":
                acc[-1] = ("atom", acc[-1][1] + lexeme[1])
            else:
                acc.append(lexeme)
        return acc

    def visit_lexeme(self, node, children):
        return children[0]

    def visit_string(self, node, children) -> Lexeme:
        return ("string", node.text)

    def visit_comment(self, node, children) -> Lexeme:
        return ("comment", node.text)

    def visit_punct(self, node, children) -> Lexeme:
        return ("punct", node.text)

    def visit_atom(self, node, children) -> Lexeme:
        return ("atom", node.text)

    def generic_visit(self, node, children):
        return node


lexeme_visitor = LexemeVisitor()


def lexemes(text: str) -> List[Lexeme]:
    return lexeme_visitor.visit(grammar.parse(text))


def verify(source: str, formatted: str) -> None:
    """Raise `ValueError` unless `formatted` has the same lexemes as `source`."""
    before = lexemes(source)
    after = lexemes(formatted)
    log.debug("comparing %d lexemes to %d", len(before), len(after))
    for i, (a, b) in enumerate(zip(before, after)):
        if a != b:
            raise ValueError(f"Lexeme #{i} changed from {a[1]!r} ({a[0]}) to {b[1]!r} ({b[0]})")
    if len(before) != len(after):
        raise ValueError(f"Lexeme count changed from {len(before)} to {len(after)}")
