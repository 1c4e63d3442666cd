"""TinyML — lexer and recursive-descent parser for a small ML-family language."""

__version__ = "0.1.0"

from tinyml.ast_nodes import *  # noqa: F401,F403
from tinyml.config import ParserConfig, load_config
from tinyml.debug import dump
from tinyml.errors import (
    CompileError, ErrorKind, LexError, ParseError, SourceLocation, TinyMLError,
)
from tinyml.lexer import Lexer, Token, TokenType, iter_tokens, tokenize
from tinyml.parser import (
    ParseResult, Parser, parse, parse_expression, parse_pattern, parse_type,
    try_parse,
)
from tinyml.visitor import NodeVisitor
