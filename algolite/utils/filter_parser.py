"""
================================================================================
Algolia Filter Parser
================================================================================
Turns an Algolia `filters` string into a small AST.

Grammar (precedence: OR < AND < NOT, binary operators are left-associative):

    expr     -> and_expr (OR and_expr)*
    and_expr -> unary (AND unary)*
    unary    -> NOT unary | primary
    primary  -> '(' expr ')' | match
    match    -> key ':' value

    key      -> identifier | quoted string
    value    -> quoted string | number | true | false | bare word

Only equality matches are supported. Numeric comparisons, ranges and geo
predicates are rejected as syntax errors.

    parse('brand:Nike AND (color:red OR color:blue)')
    # And(Match('brand', 'Nike'), Or(Match('color', 'red'), Match('color', 'blue')))

    parse('NOT "product type":"gift card"')
    # Not(Match('product type', 'gift card'))
================================================================================
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

from algolite.utils.errors import FilterSyntaxError

FilterValue = Union[str, int, float, bool]


@dataclass(frozen=True)
class Match:
    key: str
    value: FilterValue
    # source text of a bare-word value, so "007" is not rendered back as "7"
    text: Optional[str] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class And:
    left: 'FilterNode'
    right: 'FilterNode'


@dataclass(frozen=True)
class Or:
    left: 'FilterNode'
    right: 'FilterNode'


@dataclass(frozen=True)
class Not:
    operand: 'FilterNode'


FilterNode = Union[Match, And, Or, Not]


KEYWORDS = ('AND', 'OR', 'NOT')

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    | (?P<lparen>\()
    | (?P<rparen>\))
    | (?P<colon>:)
    | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    | (?P<word>[^\s():"']+)
    """,
    re.VERBOSE,
)
_IDENTIFIER_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_.\-]*\Z')
_INT_RE = re.compile(r'-?\d+\Z')
_FLOAT_RE = re.compile(r'-?\d+\.\d+\Z')
_ESCAPE_RE = re.compile(r'\\(.)')


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            char = text[pos]
            if char in ('"', "'"):
                raise FilterSyntaxError('Unterminated string literal', pos, text[pos:])
            raise FilterSyntaxError('Unexpected character', pos, char)
        kind = m.lastgroup
        if kind != 'ws':
            lexeme = m.group()
            if kind == 'word' and lexeme in KEYWORDS:
                kind = lexeme
            tokens.append(Token(kind, lexeme, pos))
        pos = m.end()
    return tokens


def _unquote(lexeme: str) -> str:
    return _ESCAPE_RE.sub(r'\1', lexeme[1:-1])


def _word_value(word: str) -> FilterValue:
    if _INT_RE.match(word):
        return int(word)
    if _FLOAT_RE.match(word):
        return float(word)
    if word == 'true':
        return True
    if word == 'false':
        return False
    return word


class _Parser:
    """Recursive-descent parser over the token list."""

    def __init__(self, text: str):
        self._text = text
        self._tokens = tokenize(text)
        self._pos = 0

    def _peek(self) -> Optional[Token]:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _accept(self, kind: str) -> Optional[Token]:
        tok = self._peek()
        if tok is not None and tok.kind == kind:
            self._pos += 1
            return tok
        return None

    def _fail(self, message: str):
        tok = self._peek()
        if tok is None:
            raise FilterSyntaxError(message, len(self._text), None)
        raise FilterSyntaxError(message, tok.position, tok.text)

    def _expect(self, kind: str, message: str) -> Token:
        tok = self._accept(kind)
        if tok is None:
            self._fail(message)
        return tok

    def parse_filter(self) -> FilterNode:
        if not self._tokens:
            raise FilterSyntaxError('Empty filter', 0, None)
        node = self._expr()
        if self._peek() is not None:
            self._fail('Unexpected token')
        return node

    def parse_single_match(self) -> Match:
        if not self._tokens:
            raise FilterSyntaxError('Empty filter', 0, None)
        node = self._match()
        if self._peek() is not None:
            self._fail('Expected a single key:value match')
        return node

    def _expr(self) -> FilterNode:
        left = self._and_expr()
        while self._accept('OR'):
            left = Or(left, self._and_expr())
        return left

    def _and_expr(self) -> FilterNode:
        left = self._unary()
        while self._accept('AND'):
            left = And(left, self._unary())
        return left

    def _unary(self) -> FilterNode:
        if self._accept('NOT'):
            return Not(self._unary())
        return self._primary()

    def _primary(self) -> FilterNode:
        if self._accept('lparen'):
            node = self._expr()
            self._expect('rparen', "Expected ')'")
            return node
        return self._match()

    def _match(self) -> Match:
        tok = self._peek()
        if tok is not None and tok.kind == 'string':
            key = _unquote(tok.text)
        elif tok is not None and tok.kind == 'word' and _IDENTIFIER_RE.match(tok.text):
            key = tok.text
        else:
            self._fail('Expected attribute name')
        self._pos += 1

        self._expect('colon', "Expected ':' after attribute name")

        tok = self._peek()
        text = None
        if tok is not None and tok.kind == 'string':
            value = _unquote(tok.text)
        elif tok is not None and tok.kind == 'word':
            value, text = _word_value(tok.text), tok.text
        else:
            self._fail('Expected value')
        self._pos += 1
        return Match(key, value, text)


def parse(text: str) -> FilterNode:
    """
    Parse a filter expression into an AST.

    :raises FilterSyntaxError: on malformed input, with the offending position and token
    """
    return _Parser(text).parse_filter()


def parse_match(text: str) -> Match:
    """Parse exactly one `key:value` term, as found in facetFilters."""
    return _Parser(text).parse_single_match()
