"""
Terraform HCL parser.

A small tokenizing parser that understands enough HCL to extract the
attributes of ``resource`` and ``data`` blocks:

- Attributes with string, number, bool, null, list and object values
- Nested blocks, with repeated blocks collected into a list
- Heredocs (``<<EOF`` and ``<<-EOF``)
- Comments (``#``, ``//`` and ``/* */``)
- Expressions, references and function calls, kept as their source text

Expressions are never evaluated. Each resource keeps the line of its block
header.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from gitops_compliance.errors import ParseError
from gitops_compliance.models import IaCFormat, IaCLocation, IaCParseResult, IaCResource
from gitops_compliance.parsers.base import IaCParser

logger = logging.getLogger(__name__)


class TokenType(Enum):
    """Token types for the HCL lexer."""

    IDENTIFIER = auto()
    STRING = auto()
    NUMBER = auto()
    BOOL = auto()
    NULL = auto()
    LBRACE = auto()
    RBRACE = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LPAREN = auto()
    RPAREN = auto()
    EQUALS = auto()
    COMMA = auto()
    DOT = auto()
    COLON = auto()
    NEWLINE = auto()
    HEREDOC = auto()
    EOF = auto()


_PUNCTUATION = {
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "=": TokenType.EQUALS,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ":": TokenType.COLON,
}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\"}


@dataclass
class Token:
    """A lexer token."""

    type: TokenType
    value: Any
    line: int
    column: int


class HCLLexer:
    """Tokenizes HCL source into a flat token list."""

    def __init__(self, content: str) -> None:
        self._content = content
        self._pos = 0
        self._line = 1
        self._column = 1
        self._tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        """
        Tokenize the content.

        Returns:
            Tokens, terminated by an EOF token
        """
        while self._pos < len(self._content):
            self._skip_whitespace_and_comments()
            if self._pos >= len(self._content):
                break

            char = self._current()

            if char == "\n":
                self._emit(TokenType.NEWLINE, "\n")
                self._advance()
            elif (char == "=" and self._peek() in ("=", ">")) or (
                char in "!<>" and self._peek() == "="
            ):
                # Comparison and lambda operators are not assignments
                self._advance()
                self._advance()
            elif char in _PUNCTUATION:
                self._emit(_PUNCTUATION[char], char)
                self._advance()
            elif char == '"':
                self._read_string()
            elif char == "<" and self._peek() == "<":
                self._read_heredoc()
            elif char.isdigit() or (char == "-" and self._peek().isdigit()):
                self._read_number()
            elif char.isalpha() or char == "_":
                self._read_identifier()
            else:
                # Operators and other symbols carry no structure we need
                self._advance()

        self._tokens.append(Token(TokenType.EOF, None, self._line, self._column))
        return self._tokens

    def _emit(self, token_type: TokenType, value: Any) -> None:
        self._tokens.append(Token(token_type, value, self._line, self._column))

    def _current(self) -> str:
        if self._pos < len(self._content):
            return self._content[self._pos]
        return ""

    def _peek(self, offset: int = 1) -> str:
        pos = self._pos + offset
        if pos < len(self._content):
            return self._content[pos]
        return ""

    def _advance(self) -> str:
        char = self._current()
        self._pos += 1
        if char == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1
        return char

    def _skip_whitespace_and_comments(self) -> None:
        while self._pos < len(self._content):
            char = self._current()

            if char in " \t\r":
                self._advance()
            elif char == "#" or (char == "/" and self._peek() == "/"):
                while self._current() and self._current() != "\n":
                    self._advance()
            elif char == "/" and self._peek() == "*":
                self._advance()
                self._advance()
                while self._pos < len(self._content):
                    if self._current() == "*" and self._peek() == "/":
                        self._advance()
                        self._advance()
                        break
                    self._advance()
            else:
                break

    def _read_string(self) -> None:
        """Read a quoted string, keeping ``${...}`` interpolations verbatim."""
        line, column = self._line, self._column
        self._advance()  # opening quote

        chars: list[str] = []
        depth = 0
        while self._current():
            char = self._current()
            if char == '"' and depth == 0:
                break
            if char == "\\" and self._peek():
                self._advance()
                escaped = self._advance()
                chars.append(_ESCAPES.get(escaped, escaped))
                continue
            if char == "$" and self._peek() == "{":
                depth += 1
                chars.append(self._advance())
                chars.append(self._advance())
                continue
            if char == "}" and depth > 0:
                depth -= 1
            elif char == "\n" and depth == 0:
                # Unterminated string
                break
            chars.append(self._advance())

        if self._current() == '"':
            self._advance()

        self._tokens.append(Token(TokenType.STRING, "".join(chars), line, column))

    def _read_heredoc(self) -> None:
        line, column = self._line, self._column
        self._advance()
        self._advance()

        indented = self._current() == "-"
        if indented:
            self._advance()

        delimiter = ""
        while self._current() and self._current() not in "\n\r":
            delimiter += self._advance()
        delimiter = delimiter.strip()

        if self._current() == "\r":
            self._advance()
        if self._current() == "\n":
            self._advance()

        lines: list[str] = []
        while self._pos < len(self._content):
            text = ""
            while self._current() and self._current() != "\n":
                text += self._advance()
            if text.strip() == delimiter:
                break
            lines.append(text.lstrip() if indented else text)
            if self._current() == "\n":
                self._advance()

        self._tokens.append(Token(TokenType.HEREDOC, "\n".join(lines), line, column))

    def _read_number(self) -> None:
        line, column = self._line, self._column
        value = ""

        if self._current() == "-":
            value += self._advance()

        while self._current() and (self._current().isdigit() or self._current() in ".eE"):
            if self._current() == "." and not self._peek().isdigit():
                break
            value += self._advance()
            if value[-1] in "eE" and self._current() in "+-":
                value += self._advance()

        try:
            if "." in value or "e" in value.lower():
                number: int | float = float(value)
            else:
                number = int(value)
            self._tokens.append(Token(TokenType.NUMBER, number, line, column))
        except ValueError:
            self._tokens.append(Token(TokenType.IDENTIFIER, value, line, column))

    def _read_identifier(self) -> None:
        line, column = self._line, self._column
        value = ""

        while self._current() and (self._current().isalnum() or self._current() in "_-"):
            value += self._advance()

        if value == "true":
            self._tokens.append(Token(TokenType.BOOL, True, line, column))
        elif value == "false":
            self._tokens.append(Token(TokenType.BOOL, False, line, column))
        elif value == "null":
            self._tokens.append(Token(TokenType.NULL, None, line, column))
        else:
            self._tokens.append(Token(TokenType.IDENTIFIER, value, line, column))


@dataclass
class HCLBlock:
    """
    A top-level HCL block.

    Attributes:
        block_type: Block keyword (resource, data, variable, ...)
        labels: Block labels in order
        body: Parsed attributes and nested blocks
        line: Line of the block keyword
        column: Column of the block keyword
    """

    block_type: str
    labels: list[str]
    body: dict[str, Any] = field(default_factory=dict)
    line: int = 1
    column: int = 1


class HCLParser:
    """
    Parses an HCL token stream into top-level blocks.

    Malformed blocks are skipped and recorded in ``errors`` so one bad
    block does not hide the rest of the file.
    """

    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._pos = 0
        self._errors: list[str] = []

    @property
    def errors(self) -> list[str]:
        """Get parse errors."""
        return self._errors

    def parse(self) -> list[HCLBlock]:
        """
        Parse all top-level blocks.

        Returns:
            Blocks in declaration order
        """
        blocks: list[HCLBlock] = []

        while not self._is_at_end():
            self._skip_newlines()
            if self._is_at_end():
                break

            start = self._current()
            try:
                block = self._parse_top_level()
            except (ValueError, IndexError, TypeError) as e:
                self._errors.append(f"Parse error at line {start.line}: {e}")
                self._skip_to_next_block()
                continue

            if block is not None:
                blocks.append(block)

        return blocks

    def _current(self) -> Token:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return self._tokens[-1]

    def _advance(self) -> Token:
        token = self._current()
        if self._pos < len(self._tokens):
            self._pos += 1
        return token

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _skip_newlines(self) -> None:
        while self._current().type == TokenType.NEWLINE:
            self._advance()

    def _skip_to_next_block(self) -> None:
        depth = 0
        while not self._is_at_end():
            token = self._advance()
            if token.type == TokenType.LBRACE:
                depth += 1
            elif token.type == TokenType.RBRACE:
                depth -= 1
                if depth <= 0:
                    break
        self._skip_newlines()

    def _parse_top_level(self) -> HCLBlock | None:
        token = self._current()
        if token.type != TokenType.IDENTIFIER:
            self._advance()
            return None

        block_type = self._advance().value

        if self._current().type == TokenType.EQUALS:
            # Top-level attribute, as in .tfvars files
            self._advance()
            self._skip_newlines()
            self._parse_value()
            return None

        labels: list[str] = []
        while self._current().type in (TokenType.IDENTIFIER, TokenType.STRING):
            labels.append(str(self._advance().value))

        self._skip_newlines()

        if self._current().type != TokenType.LBRACE:
            raise ValueError(f"Expected '{{' after {block_type} block header")

        self._advance()
        body = self._parse_body()
        self._expect_closing(TokenType.RBRACE, block_type)

        return HCLBlock(
            block_type=block_type,
            labels=labels,
            body=body,
            line=token.line,
            column=token.column,
        )

    def _expect_closing(self, token_type: TokenType, context: str) -> None:
        if self._current().type != token_type:
            raise ValueError(f"Unterminated {context} block")
        self._advance()

    def _parse_body(self) -> dict[str, Any]:
        """Parse a block body up to, not including, its closing brace."""
        body: dict[str, Any] = {}

        while True:
            self._skip_newlines()
            token = self._current()
            if token.type in (TokenType.RBRACE, TokenType.EOF):
                break

            if token.type not in (TokenType.IDENTIFIER, TokenType.STRING):
                self._advance()
                continue

            key = str(self._advance().value)

            if self._current().type == TokenType.EQUALS:
                self._advance()
                self._skip_newlines()
                body[key] = self._parse_value()
                continue

            labels: list[str] = []
            while self._current().type in (TokenType.IDENTIFIER, TokenType.STRING):
                labels.append(str(self._advance().value))

            if self._current().type != TokenType.LBRACE:
                continue

            self._advance()
            nested = self._parse_body()
            self._expect_closing(TokenType.RBRACE, key)

            if labels:
                bucket = body.setdefault(key, {})
                if isinstance(bucket, dict):
                    bucket[".".join(labels)] = nested
            elif key in body:
                if isinstance(body[key], list):
                    body[key].append(nested)
                else:
                    body[key] = [body[key], nested]
            else:
                body[key] = nested

        return body

    def _parse_value(self) -> Any:
        token = self._current()

        if token.type in (
            TokenType.STRING,
            TokenType.HEREDOC,
            TokenType.NUMBER,
            TokenType.BOOL,
        ):
            return self._advance().value
        if token.type == TokenType.NULL:
            self._advance()
            return None
        if token.type == TokenType.LBRACKET:
            return self._parse_list()
        if token.type == TokenType.LBRACE:
            return self._parse_object()
        if token.type == TokenType.IDENTIFIER:
            return self._parse_expression()
        if token.type == TokenType.LPAREN:
            return self._parse_expression()

        self._advance()
        return None

    def _parse_list(self) -> list[Any]:
        self._advance()  # [
        items: list[Any] = []

        while True:
            self._skip_newlines()
            if self._current().type in (TokenType.RBRACKET, TokenType.EOF):
                break
            if self._current().type == TokenType.COMMA:
                self._advance()
                continue
            items.append(self._parse_value())

        self._expect_closing(TokenType.RBRACKET, "list")
        return items

    def _parse_object(self) -> dict[str, Any]:
        self._advance()  # {
        obj: dict[str, Any] = {}

        while True:
            self._skip_newlines()
            token = self._current()
            if token.type in (TokenType.RBRACE, TokenType.EOF):
                break

            if token.type in (TokenType.IDENTIFIER, TokenType.STRING):
                key = str(self._advance().value)
                if self._current().type in (TokenType.EQUALS, TokenType.COLON):
                    self._advance()
                    self._skip_newlines()
                    obj[key] = self._parse_value()
                continue

            self._advance()

        self._expect_closing(TokenType.RBRACE, "object")
        return obj

    def _parse_expression(self) -> str | None:
        """Collect a reference or function call as its source text."""
        parts: list[str] = []

        while not self._is_at_end():
            token = self._current()

            if token.type == TokenType.IDENTIFIER:
                if parts and parts[-1] != ".":
                    break
                parts.append(self._advance().value)
            elif token.type == TokenType.DOT:
                parts.append(self._advance().value)
            elif token.type == TokenType.NUMBER and parts and parts[-1] == ".":
                parts.append(str(self._advance().value))
            elif token.type == TokenType.LBRACKET:
                self._advance()
                inner = []
                while self._current().type not in (TokenType.RBRACKET, TokenType.EOF):
                    value = self._parse_value()
                    inner.append("" if value is None else str(value))
                    if self._current().type == TokenType.COMMA:
                        self._advance()
                self._expect_closing(TokenType.RBRACKET, "index")
                parts.append(f"[{', '.join(inner)}]")
            elif token.type == TokenType.LPAREN:
                self._advance()
                args = []
                while True:
                    self._skip_newlines()
                    if self._current().type in (TokenType.RPAREN, TokenType.EOF):
                        break
                    if self._current().type == TokenType.COMMA:
                        self._advance()
                        continue
                    arg = self._parse_value()
                    args.append("" if arg is None else str(arg))
                self._expect_closing(TokenType.RPAREN, "function call")
                parts.append(f"({', '.join(args)})")
            else:
                break

        return "".join(parts) if parts else None


class TerraformParser(IaCParser):
    """
    Parser for Terraform (.tf) files.

    ``resource "type" "name"`` blocks become resources with id ``name``.
    ``data "type" "name"`` blocks become resources with type
    ``data.type`` and id ``data.name``. Resources come first, then data
    sources, each in declaration order.
    """

    @property
    def format(self) -> IaCFormat:
        """Return Terraform format."""
        return IaCFormat.TERRAFORM

    def parse_content(self, content: str, file_path: str = "<string>") -> IaCParseResult:
        """
        Parse Terraform content from a string.

        Args:
            content: The HCL content to parse
            file_path: Path recorded in resource locations

        Returns:
            Parsed IaCParseResult

        Raises:
            ParseError: If the content cannot be tokenized
        """
        try:
            tokens = HCLLexer(content).tokenize()
        except (ValueError, IndexError) as e:
            raise ParseError(f"Failed to tokenize Terraform file: {e}", file_path) from e

        parser = HCLParser(tokens)
        blocks = parser.parse()

        if parser.errors and not blocks:
            raise ParseError(parser.errors[0], file_path)
        for error in parser.errors:
            logger.warning(f"{file_path}: {error}")

        resources: list[IaCResource] = []
        data_sources: list[IaCResource] = []

        for block in blocks:
            if len(block.labels) < 2:
                continue
            resource_type, name = block.labels[0], block.labels[1]
            location = IaCLocation(file=file_path, line=block.line, column=block.column)

            if block.block_type == "resource":
                resources.append(IaCResource(
                    id=name,
                    type=resource_type,
                    properties=block.body,
                    location=location,
                ))
            elif block.block_type == "data":
                data_sources.append(IaCResource(
                    id=f"data.{name}",
                    type=f"data.{resource_type}",
                    properties=block.body,
                    location=location,
                ))

        metadata: dict[str, Any] = {}
        providers = sorted({
            b.labels[0] for b in blocks if b.block_type == "provider" and b.labels
        })
        if providers:
            metadata["providers"] = providers
        required_version = next(
            (
                b.body.get("required_version")
                for b in blocks
                if b.block_type == "terraform" and "required_version" in b.body
            ),
            None,
        )
        if isinstance(required_version, str):
            metadata["version"] = required_version

        logger.debug(
            f"Parsed {len(resources)} resources and {len(data_sources)} data "
            f"sources from {file_path}"
        )

        return IaCParseResult(
            format=IaCFormat.TERRAFORM,
            resources=resources + data_sources,
            metadata=metadata,
        )
