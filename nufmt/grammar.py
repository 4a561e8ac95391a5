"""PEG grammar splitting nu source into the lexemes the formatter cares about.

The grammar accepts any text: whatever is not a string, a comment,
a structural character or whitespace is part of an atom.
"""
from parsimonious import Grammar

src = r"""
source = lexeme*
lexeme = string / comment / punct / _ / atom

string = quote_char string_char* quote_char?
string_char = escaped_char / ~r'[^"\\]+' / backslash_char
escaped_char = backslash_char ~r"."s
quote_char = "\""
backslash_char = "\\"

comment = ~r"#[^\n]*"
punct = ~r"[\[\]{}:,]"
atom = ~r'[^"#\[\]{}:, \t\n\r\x0b\x0c]+'

_ = ~r"[ \t\n\r\x0b\x0c]+"
"""

grammar = Grammar(src)
