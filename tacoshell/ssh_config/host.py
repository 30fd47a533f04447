import fnmatch
from typing import List, Optional


def get_string_with_indent(indent: int, string: str) -> str:
    return "\t" * indent + string


def get_stripped_string_or_none(s) -> str | None:
    return str(s).strip() if s else None


def get_int_or_none(s) -> int | None:
    return int(s) if s else None


def is_none_or_empty(s: str):
    return s is None or s.strip() == ""


def merge_comment(current: str | None, comment: str | None) -> str | None:
    comment = get_stripped_string_or_none(comment)
    if not comment:
        return current
    return current + " " + comment if current else comment


class SSHEndpoint:

    def __init__(self, hostname=None, port=None, comment=None):
        self.hostname = get_stripped_string_or_none(hostname)
        self.port = get_int_or_none(port)
        self.comment = get_stripped_string_or_none(comment)

    def __gen_comment_str(self, indent: int) -> str:
        if is_none_or_empty(self.comment):
            return ""
        return get_string_with_indent(indent, f"# {self.comment}\n")

    def __gen_hostname_str(self, indent: int) -> str:
        if is_none_or_empty(self.hostname):
            return ""
        return get_string_with_indent(indent, f"HostName {self.hostname}\n")

    def __gen_port_str(self, indent: int) -> str:
        if self.port is None:
            return ""
        return get_string_with_indent(indent, f"Port {self.port}\n")

    def to_string(self, indent: int) -> str:
        return (
            self.__gen_comment_str(indent)
            + self.__gen_hostname_str(indent)
            + self.__gen_port_str(indent)
        )

    def add_config(self, key: str, value: str, comment: str) -> bool:
        lowered = key.lower()
        if lowered == "hostname":
            self.hostname = value
        elif lowered == "port":
            try:
                self.port = int(value)
            except ValueError:
                raise ValueError(f"Port must be an integer, got {value!r}")
        else:
            return False
        self.comment = merge_comment(self.comment, comment)
        return True


class SSHAuthentication:

    def __init__(self, user=None, identity_file=None, comment=None):
        self.user = get_stripped_string_or_none(user)
        self.identity_file = get_stripped_string_or_none(identity_file)
        self.comment = get_stripped_string_or_none(comment)

    def __gen_comment_str(self, indent: int) -> str:
        if is_none_or_empty(self.comment):
            return ""
        return get_string_with_indent(indent, f"# {self.comment}\n")

    def __gen_user_str(self, indent: int) -> str:
        if is_none_or_empty(self.user):
            return ""
        return get_string_with_indent(indent, f"User {self.user}\n")

    def __gen_identity_file_str(self, indent: int) -> str:
        if is_none_or_empty(self.identity_file):
            return ""
        return get_string_with_indent(indent, f"IdentityFile {self.identity_file}\n")

    def to_string(self, indent: int) -> str:
        return (
            self.__gen_comment_str(indent)
            + self.__gen_user_str(indent)
            + self.__gen_identity_file_str(indent)
        )

    def add_config(self, key: str, value: str, comment: str) -> bool:
        lowered = key.lower()
        if lowered == "user":
            self.user = value
        elif lowered == "identityfile":
            # ssh keeps every IdentityFile; a single key is enough to authenticate
            if self.identity_file is None:
                self.identity_file = value
        else:
            return False
        self.comment = merge_comment(self.comment, comment)
        return True


class SSHExtraConfig:
    def __init__(self, key=None, value=None, comment=None):
        self.key = get_stripped_string_or_none(key)
        self.value = get_stripped_string_or_none(value)
        self.comment = get_stripped_string_or_none(comment)

    def __gen_comment_str(self, indent: int) -> str:
        if is_none_or_empty(self.comment):
            return ""
        return get_string_with_indent(indent, f"# {self.comment}\n")

    def __gen_extra_config_str(self, indent: int) -> str:
        if self.key is None:
            raise ValueError("SSHExtraConfig key is None")
        if self.value is None:
            raise ValueError("SSHExtraConfig value is None")
        return get_string_with_indent(indent, f"{self.key} {self.value}\n")

    def to_string(self, indent: int) -> str:
        return self.__gen_comment_str(indent) + self.__gen_extra_config_str(indent)


class SSHHostConfig:
    """One ``Host`` block of an OpenSSH client config.

    ``patterns`` holds every pattern on the ``Host`` line. A block parsed from
    lines that precede the first ``Host`` keyword gets the single pattern
    ``*`` and ``implicit`` set, so it is never printed with a header.
    """

    def __init__(
        self,
        patterns: Optional[List[str]] = None,
        comment=None,
        implicit: bool = False,
    ):
        self.patterns: List[str] = list(patterns or [])
        self.comment = get_stripped_string_or_none(comment)
        self.implicit = implicit
        self.endpoint: SSHEndpoint = SSHEndpoint()
        self.authentication: SSHAuthentication = SSHAuthentication()
        self.extra_config: List[SSHExtraConfig] = []

    @property
    def name(self) -> str | None:
        return " ".join(self.patterns) if self.patterns else None

    def matches(self, alias: str) -> bool:
        """Return True when ``alias`` matches a pattern and no negated one."""
        matched = False
        for pattern in self.patterns:
            if pattern.startswith("!"):
                if fnmatch.fnmatchcase(alias, pattern[1:]):
                    return False
                continue
            if fnmatch.fnmatchcase(alias, pattern):
                matched = True
        return matched

    def get_extra(self, key: str) -> str | None:
        for extra in self.extra_config:
            if extra.key and extra.key.lower() == key.lower():
                return extra.value
        return None

    def __gen_comment_str(self, indent: int) -> str:
        if self.comment is None or len(self.comment) == 0:
            return ""
        return get_string_with_indent(indent, f"# {self.comment}\n")

    def __gen_host_config_header_str(self, indent: int) -> str:
        if self.implicit:
            return ""
        if not self.patterns:
            raise ValueError("SSHHostConfig has no host patterns")
        return get_string_with_indent(indent, f"Host {self.name}\n")

    def __gen_extra_config_str(self, indent: int) -> str:
        ret = ""
        for extra_config in self.extra_config:
            ret += extra_config.to_string(indent)
        return ret

    def to_string(self, indent: int) -> str:
        body_indent = indent if self.implicit else indent + 1
        return (
            self.__gen_comment_str(indent)
            + self.__gen_host_config_header_str(indent)
            + self.endpoint.to_string(body_indent)
            + self.authentication.to_string(body_indent)
            + self.__gen_extra_config_str(body_indent)
        )

    def add_config(self, key: str, value: str, comment: str):
        if self.endpoint.add_config(key, value, comment):
            return
        if self.authentication.add_config(key, value, comment):
            return
        self.extra_config.append(SSHExtraConfig(key, value, comment))
