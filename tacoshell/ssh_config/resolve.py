from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from tacoshell.errors import ConfigError
from tacoshell.ssh_config.host import SSHAuthentication, SSHEndpoint, SSHHostConfig
from tacoshell.ssh_config import parser

logger = logging.getLogger(__name__)


@dataclass
class ResolvedHost:
    """Connection parameters an OpenSSH config yields for one alias."""

    alias: str
    hostname: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    identity_file: Optional[str] = None
    matched: List[str] = field(default_factory=list)

    def to_host_config(self) -> SSHHostConfig:
        """Render the resolution as a single ``Host`` block."""
        host_config = SSHHostConfig([self.alias])
        if self.matched:
            host_config.comment = "resolved from: " + ", ".join(self.matched)
        host_config.endpoint = SSHEndpoint(self.hostname or self.alias, self.port)
        host_config.authentication = SSHAuthentication(self.user, self.identity_file)
        return host_config


def load_ssh_config(path: Optional[str]) -> List[SSHHostConfig]:
    if not path:
        return []
    path = os.path.expanduser(path)
    if not os.path.exists(path):
        logger.debug("No ssh config at %s", path)
        return []
    try:
        with open(path, "r", encoding="utf-8") as file:
            return parser.parse_ssh_config(file.read())
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Failed to parse ssh config {path}: {exc}") from exc


def resolve_host(configs: List[SSHHostConfig], alias: str) -> ResolvedHost:
    """Apply every matching block in file order; the first value for a field wins."""
    resolved = ResolvedHost(alias=alias)
    for host_config in configs:
        if not host_config.matches(alias):
            continue
        resolved.matched.append(host_config.name or "")
        if resolved.hostname is None and host_config.endpoint.hostname:
            resolved.hostname = host_config.endpoint.hostname.replace("%h", alias)
        if resolved.port is None and host_config.endpoint.port is not None:
            resolved.port = host_config.endpoint.port
        if resolved.user is None and host_config.authentication.user:
            resolved.user = host_config.authentication.user
        if resolved.identity_file is None and host_config.authentication.identity_file:
            resolved.identity_file = os.path.expanduser(
                host_config.authentication.identity_file
            )
    if resolved.matched:
        logger.debug("Host %s matched ssh config blocks %s", alias, resolved.matched)
    return resolved
