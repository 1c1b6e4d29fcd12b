"""
Lexer for exprlang.

Converts source text into a lazy stream of tokens for the parser.
Supports:
- Integer and float literals (no exponents)
- String literals with \\n, \\t, \\r and \\\\ escapes
- Identifiers, keywords and $environment variables
- One- and two-character operators

The lexer never raises for unrecognized input: it produces an INVALID
token and leaves the decision to the parser.
"""

from typing import List, Optional, Iterator, Union
from .tokens import (
    Token, TokenType, SourceLocation, SourceSpan, KEYWORDS, PUNCTUATION, OPERATORS,
)
from .errors import error_invalid_encoding

ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
}

WHITESPACE = " \t\r\n"


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_name_start(ch: str) -> bool:
    return ch.isascii() and (ch.isalpha() or ch == "_")


def _is_name_char(ch: str) -> bool:
    return _is_name_start(ch) or _is_digit(ch)


class Lexer:
    """
    Tokenizer for exprlang source.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        token = lexer.next_token()   # EOF is returned forever at the end
    """

    def __init__(self, source: Union[str, bytes], filename: Optional[str] = None):
        if isinstance(source, (bytes, bytearray)):
            try:
                source = bytes(source).decode("utf-8", errors="strict")
            except UnicodeDecodeError as exc:
                raise error_invalid_encoding(str(exc)) from exc
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at the character at current position + offset, '' past the end."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return ""
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return ""
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _skip_whitespace(self) -> None:
        while not self._is_at_end() and self._peek() in WHITESPACE:
            self._advance()

    def _make_token(self, token_type: TokenType, value, start: SourceLocation) -> Token:
        lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, self._span(start))

    def _invalid(self, reason: str, start: SourceLocation) -> Token:
        return self._make_token(TokenType.INVALID, reason, start)

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal, decoding escapes."""
        start = self._location()
        self._advance()  # opening quote

        chars = []
        while True:
            if self._is_at_end():
                return self._invalid("unterminated string literal", start)
            ch = self._advance()
            if ch == '"':
                break
            if ch == "\\":
                if self._is_at_end():
                    return self._invalid("unterminated string literal", start)
                escaped = self._advance()
                # Unknown escapes keep both characters
                chars.append(ESCAPES.get(escaped, "\\" + escaped))
            else:
                chars.append(ch)

        return self._make_token(TokenType.STRING, "".join(chars), start)

    def _scan_number(self) -> Token:
        """Scan an integer, or a float when '.' is followed by a digit."""
        start = self._location()
        while _is_digit(self._peek()):
            self._advance()

        if self._peek() == "." and _is_digit(self._peek(1)):
            self._advance()
            while _is_digit(self._peek()):
                self._advance()
            text = self.source[start.offset:self.pos]
            return self._make_token(TokenType.FLOAT, float(text), start)

        text = self.source[start.offset:self.pos]
        return self._make_token(TokenType.INTEGER, int(text), start)

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan an identifier or keyword."""
        start = self._location()
        while _is_name_char(self._peek()):
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        if lexeme in KEYWORDS:
            return self._make_token(KEYWORDS[lexeme], lexeme, start)
        return self._make_token(TokenType.IDENTIFIER, lexeme, start)

    def _scan_env_variable(self) -> Token:
        """Scan $name; keyword spellings and a bare '$' are invalid."""
        start = self._location()
        self._advance()  # '$'

        if not _is_name_start(self._peek()):
            return self._invalid("expected a name after '$'", start)
        while _is_name_char(self._peek()):
            self._advance()

        name = self.source[start.offset + 1:self.pos]
        if name in KEYWORDS:
            return self._invalid(f"keyword '{name}' cannot be used as an environment variable", start)
        return self._make_token(TokenType.ENV_VARIABLE, name, start)

    def _scan_operator(self) -> Token:
        """Scan an operator using one character of lookahead."""
        start = self._location()
        ch = self._advance()
        single, doubles = OPERATORS[ch]

        second = self._peek()
        if second in doubles:
            self._advance()
            return self._make_token(doubles[second], ch + second, start)
        if single is None:
            return self._invalid(f"unexpected character '{ch}'", start)
        return self._make_token(single, ch, start)

    def next_token(self) -> Token:
        """Scan and return the next token; EOF is returned repeatedly at the end."""
        self._skip_whitespace()
        start = self._location()

        if self._is_at_end():
            return Token(TokenType.EOF, None, "", SourceSpan(start, start))

        ch = self._peek()
        if ch == "$":
            return self._scan_env_variable()
        if _is_digit(ch):
            return self._scan_number()
        if _is_name_start(ch):
            return self._scan_identifier_or_keyword()
        if ch == '"':
            return self._scan_string()
        if ch in PUNCTUATION:
            self._advance()
            return self._make_token(PUNCTUATION[ch], ch, start)
        if ch in OPERATORS:
            return self._scan_operator()

        self._advance()
        return self._invalid(f"unexpected character '{ch}'", start)

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list ending with EOF."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens up to and including the first EOF."""
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: Union[str, bytes], filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize (bytes are decoded as UTF-8)
        filename: Optional filename for error messages

    Returns:
        List of tokens, the last one being EOF

    Raises:
        LexerError: If the source bytes are not valid UTF-8
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
