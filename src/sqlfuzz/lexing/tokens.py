"""Token ids produced by the reference SQL scanner.

Ids are stable integers because the Markov model keys everything on them.
END (0) is the terminal token shared with every other tokenizer; ids are
never negative.

Python 3.13+. Zero external dependencies.
"""

from enum import IntEnum
from types import MappingProxyType

from sqlfuzz.constants import END_OF_QUERY

__all__ = [
    "KEYWORDS",
    "OPERATORS",
    "STATEMENT_KEYWORDS",
    "STRING_PLACEHOLDER",
    "TokenKind",
]


class TokenKind(IntEnum):
    """Lexical token classes of the reference scanner."""

    END = END_OF_QUERY

    # Statement keywords (1-19)
    SELECT = 1
    INSERT = 2
    UPDATE = 3
    DELETE = 4
    SET = 5
    SHOW = 6
    DESCRIBE = 7
    EXPLAIN = 8
    REPLACE = 9
    BEGIN = 10
    COMMIT = 11
    ROLLBACK = 12
    USE = 13
    LOCK = 14
    UNLOCK = 15

    # Clause keywords (20-79)
    FROM = 20
    WHERE = 21
    AND = 22
    OR = 23
    NOT = 24
    INTO = 25
    VALUES = 26
    JOIN = 27
    LEFT = 28
    RIGHT = 29
    INNER = 30
    OUTER = 31
    ON = 32
    AS = 33
    GROUP = 34
    ORDER = 35
    BY = 36
    HAVING = 37
    LIMIT = 38
    OFFSET = 39
    UNION = 40
    ALL = 41
    DISTINCT = 42
    IN = 43
    IS = 44
    NULL = 45
    LIKE = 46
    BETWEEN = 47
    ASC = 48
    DESC = 49
    EXISTS = 50
    CASE = 51
    WHEN = 52
    THEN = 53
    ELSE = 54
    END_KW = 55
    TABLES = 56
    COLUMNS = 57
    DATABASES = 58
    STATUS = 59
    VARIABLES = 60
    TABLE = 61
    TRUE = 62
    FALSE = 63
    IGNORE = 64
    LOW_PRIORITY = 65
    DUPLICATE = 66
    KEY = 67
    FOR = 68
    SHARE = 69
    MODE = 70
    REGEXP = 71
    INTERVAL = 72
    USING = 73
    CROSS = 74
    STRAIGHT_JOIN = 75
    DIV = 76
    MOD = 77
    XOR = 78
    SOUNDS = 79

    # Literals and names (100-119)
    IDENTIFIER = 100
    QUOTED_IDENTIFIER = 101
    INTEGER = 102
    FLOAT = 103
    STRING = 104
    HEX_NUMBER = 105
    GLOBAL_VARIABLE = 106
    USER_VARIABLE = 107
    PLACEHOLDER = 108

    # Operators and punctuation (120-159)
    STAR = 120
    COMMA = 121
    DOT = 122
    LPAREN = 123
    RPAREN = 124
    SEMICOLON = 125
    EQ = 126
    NE = 127
    LT = 128
    LE = 129
    GT = 130
    GE = 131
    NULL_SAFE_EQ = 132
    PLUS = 133
    MINUS = 134
    SLASH = 135
    PERCENT = 136
    BIT_AND = 137
    BIT_OR = 138
    BIT_XOR = 139
    BIT_NOT = 140
    SHIFT_LEFT = 141
    SHIFT_RIGHT = 142
    LOGICAL_AND = 143
    LOGICAL_OR = 144
    ASSIGN = 145

    # Anything the scanner does not recognise
    UNKNOWN = 199


# Text emitted for every string literal. The model only needs some valid
# literal, never the corpus value.
STRING_PLACEHOLDER: str = "'?'"

KEYWORDS: MappingProxyType[str, TokenKind] = MappingProxyType(
    {
        kind.name.removesuffix("_KW"): kind
        for kind in TokenKind
        if 1 <= kind.value < 100
    }
)

STATEMENT_KEYWORDS: frozenset[TokenKind] = frozenset(
    kind for kind in TokenKind if 1 <= kind.value < 20
)

# Longest operators first so that maximal munch works with a prefix scan.
OPERATORS: tuple[tuple[str, TokenKind], ...] = (
    ("<=>", TokenKind.NULL_SAFE_EQ),
    ("<=", TokenKind.LE),
    (">=", TokenKind.GE),
    ("<>", TokenKind.NE),
    ("!=", TokenKind.NE),
    ("<<", TokenKind.SHIFT_LEFT),
    (">>", TokenKind.SHIFT_RIGHT),
    ("&&", TokenKind.LOGICAL_AND),
    ("||", TokenKind.LOGICAL_OR),
    (":=", TokenKind.ASSIGN),
    ("*", TokenKind.STAR),
    (",", TokenKind.COMMA),
    (".", TokenKind.DOT),
    ("(", TokenKind.LPAREN),
    (")", TokenKind.RPAREN),
    (";", TokenKind.SEMICOLON),
    ("=", TokenKind.EQ),
    ("<", TokenKind.LT),
    (">", TokenKind.GT),
    ("+", TokenKind.PLUS),
    ("-", TokenKind.MINUS),
    ("/", TokenKind.SLASH),
    ("%", TokenKind.PERCENT),
    ("&", TokenKind.BIT_AND),
    ("|", TokenKind.BIT_OR),
    ("^", TokenKind.BIT_XOR),
    ("~", TokenKind.BIT_NOT),
    ("?", TokenKind.PLACEHOLDER),
)
