import re
from typing import List, Optional, Tuple

from tacoshell.ssh_config.host import SSHHostConfig

# Token types, tried in order
TOKEN_TYPES = {
    "COMMENT": re.compile(r"#.*"),  # comment up to end of line
    "QUOTED": re.compile(r'"[^"\n]*"'),  # double-quoted argument
    "ITEM": re.compile(r"[^\s\"]+"),  # keyword or argument
    "WHITESPACE": re.compile(r"\s+"),
}

Token = Tuple[str, str, int, int]


class SSHConfigLexer:
    def __init__(self, source_code: str):
        self.source_code = source_code
        self.position = 0
        self.line = 1
        self.column = 1

    def get_token(self) -> Optional[Token]:
        """
        Return the next token as ``(type, value, line, column)``; whitespace is skipped.
        """
        while self.position < len(self.source_code):
            for token_type, regex in TOKEN_TYPES.items():
                match = regex.match(self.source_code, self.position)
                if not match:
                    continue
                value = match.group(0)
                line, column = self.line, self.column
                self.position = match.end()

                lines = value.split("\n")
                if len(lines) > 1:
                    self.line += len(lines) - 1
                    self.column = len(lines[-1]) + 1
                else:
                    self.column += len(value)

                if token_type != "WHITESPACE":
                    return (token_type, value, line, column)
                break
            else:
                raise ValueError(
                    f"Unexpected character at position {self.position} (Line {self.line}, Column {self.column})"
                )
        return None


class SSHConfigParser:
    def __init__(self, lexer: SSHConfigLexer):
        self.lexer = lexer
        self.current_token: Optional[Token] = None
        self.next_token: Optional[Token] = None
        self.get_next_token()
        self.get_next_token()

    def get_next_token(self) -> Optional[Token]:
        self.current_token = self.next_token
        self.next_token = self.lexer.get_token()
        return self.current_token

    def read_line_arguments(self) -> List[Token]:
        """Consume every non-comment token on the current token's line."""
        line = self.current_token[2]
        tokens = []
        while self.current_token is not None and self.current_token[2] == line:
            if self.current_token[0] == "COMMENT":
                break
            tokens.append(self.current_token)
            self.get_next_token()
        return tokens

    def parse_kv(self) -> Tuple[str, List[str]]:
        if self.current_token is None:
            raise ValueError("Expected keyword, but got None")
        if self.current_token[0] != "ITEM":
            raise ValueError(
                f"Expected keyword, but got {self.current_token[0]} at line {self.current_token[2]}, column {self.current_token[3]}"
            )
        line, column = self.current_token[2], self.current_token[3]
        tokens = self.read_line_arguments()
        key = tokens[0][1]
        values = [token[1] for token in tokens[1:]]

        # "Key=Value", "Key= Value", "Key =Value" and "Key = Value"
        if "=" in key:
            key, _, rest = key.partition("=")
            if rest:
                values.insert(0, rest)
        elif values and values[0].startswith("="):
            rest = values.pop(0)[1:]
            if rest:
                values.insert(0, rest)

        values = [value[1:-1] if value.startswith('"') else value for value in values]
        if not key:
            raise ValueError(f"Expected keyword at line {line}, column {column}")
        if not values:
            raise ValueError(f"Expected value for {key} at line {line}, column {column}")
        return key, values

    def parse(self) -> List[SSHHostConfig]:
        ret: List[SSHHostConfig] = []
        current: Optional[SSHHostConfig] = None
        comment = ""
        while self.current_token is not None:
            if self.current_token[0] == "COMMENT":
                comment += self.current_token[1][1:] + " "
                self.get_next_token()
                continue

            key, values = self.parse_kv()
            keyword = key.lower()
            if keyword == "host":
                current = SSHHostConfig(values, comment)
                ret.append(current)
            elif keyword == "match":
                # Match criteria are not evaluated; the block is parsed and dropped.
                current = SSHHostConfig([], comment)
            else:
                if current is None:
                    current = SSHHostConfig(["*"], implicit=True)
                    ret.append(current)
                current.add_config(key, " ".join(values), comment)
            comment = ""
        return ret


def parse_ssh_config(ssh_config_content: str) -> List[SSHHostConfig]:
    lexer = SSHConfigLexer(ssh_config_content)
    parser = SSHConfigParser(lexer)
    return parser.parse()
