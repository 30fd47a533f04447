from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from tacoshell.__about__ import __version__
from tacoshell.errors import ConfigError, TacoshellError
from tacoshell.models import DEFAULT_PORT, DEFAULT_USERNAME, AuthMethod, FileEntry, Server
from tacoshell.session import ConnectSettings, SSHSession
from tacoshell.shell import run_command, run_interactive_shell
from tacoshell.ssh_config.resolve import ResolvedHost, load_ssh_config, resolve_host
from tacoshell.transfer import SFTPTransfer
from tacoshell.utils.config import Config
from tacoshell.utils.logging_utils import configure_daily_file_logger

console = Console()
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="tacoshell",
    add_completion=False,
    help="A simple SSH client.",
)
sftp_app = typer.Typer(
    name="tacoshell-sftp",
    add_completion=False,
    no_args_is_help=True,
    help="Transfer files over SFTP. Connection options go before HOST.",
)


@dataclass
class CLIContext:
    config: Config
    server: Server
    auth: AuthMethod
    settings: ConnectSettings
    resolved: ResolvedHost
    session: Optional[SSHSession] = None

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tacoshell {__version__}")
        raise typer.Exit()


def _parse_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise typer.BadParameter(f"Port must be a number, got {value!r}", param_hint="'--port'")
    if port < 1 or port > 65535:
        raise typer.BadParameter(f"Port out of range: {port}", param_hint="'--port'")
    return port


def _parse_mode(value: str) -> int:
    try:
        return int(value, 8)
    except ValueError:
        raise typer.BadParameter(f"Mode must be octal, e.g. 755, got {value!r}", param_hint="'--mode'")


def _load_config(config_path: Optional[Path]) -> Config:
    try:
        return Config(str(config_path) if config_path else None)
    except ConfigError as exc:
        typer.echo(f"Failed to load settings: {exc}", err=True)
        raise typer.Exit(code=2)


def _configure_logging(
    config: Config, verbose: bool, quiet: bool, log_file: Optional[Path]
) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    try:
        target = str(log_file) if log_file else config.get_path("log_file")
        configure_daily_file_logger(
            target,
            level=level,
            retention_days=config.get_int("log_retention_days"),
        )
    except (ConfigError, OSError) as exc:
        typer.echo(f"Failed to configure logging: {exc}", err=True)
        raise typer.Exit(code=2)


def _select_auth(
    password: str,
    identity: Optional[Path],
    passphrase: Optional[str],
    agent: bool,
    resolved: ResolvedHost,
) -> AuthMethod:
    if identity is not None:
        return AuthMethod.with_private_key(str(identity), passphrase)
    if agent:
        return AuthMethod.with_agent()
    if not password and resolved.identity_file:
        if os.path.isfile(resolved.identity_file):
            logger.debug("Using IdentityFile %s from ssh config", resolved.identity_file)
            return AuthMethod.with_private_key(resolved.identity_file, passphrase)
        logger.debug("Skipping missing IdentityFile %s", resolved.identity_file)
    return AuthMethod.with_password(password)


def _build_context(
    host: str,
    username: Optional[str],
    password: str,
    port: Optional[str],
    identity: Optional[Path],
    passphrase: Optional[str],
    agent: bool,
    ssh_config: Optional[Path],
    config: Config,
) -> CLIContext:
    port_number = _parse_port(port) if port is not None else None
    try:
        ssh_config_path = str(ssh_config) if ssh_config else config.get_path("ssh_config")
        resolved = resolve_host(load_ssh_config(ssh_config_path), host)
        settings = ConnectSettings.from_config(config)
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)

    server = Server(
        host=resolved.hostname or host,
        port=port_number or resolved.port or DEFAULT_PORT,
        username=username or resolved.user or DEFAULT_USERNAME,
        name=host,
    )
    # command-line values win over the ssh config block
    resolved.port = server.port
    resolved.user = server.username
    auth = _select_auth(password, identity, passphrase, agent, resolved)
    if auth.kind == AuthMethod.PRIVATE_KEY:
        resolved.identity_file = auth.key
    return CLIContext(
        config=config,
        server=server,
        auth=auth,
        settings=settings,
        resolved=resolved,
    )


def _connect(cli_ctx: CLIContext) -> SSHSession:
    if cli_ctx.session is not None:
        return cli_ctx.session
    try:
        cli_ctx.session = SSHSession.connect(cli_ctx.server, cli_ctx.auth, cli_ctx.settings)
    except TacoshellError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    return cli_ctx.session


def _exit_code(status: int) -> int:
    # no exit-status message from the server means the channel just closed
    return status if 0 <= status <= 255 else 255


@app.command()
def main(
    host: str = typer.Argument(..., help="SSH host or ssh config alias."),
    username: Optional[str] = typer.Option(
        None, "--username", "-u", help=f"SSH username [default: {DEFAULT_USERNAME}]"
    ),
    password: str = typer.Option("", "--pass", "-p", help="SSH password."),
    port: Optional[str] = typer.Option(
        None, "--port", "-P", help=f"SSH port [default: {DEFAULT_PORT}]"
    ),
    identity: Optional[Path] = typer.Option(
        None, "--identity", "-i", help="Private key file for public-key authentication.", dir_okay=False
    ),
    passphrase: Optional[str] = typer.Option(None, "--passphrase", help="Passphrase for the private key."),
    agent: bool = typer.Option(False, "--agent", "-A", help="Authenticate with SSH agent identities."),
    command: Optional[str] = typer.Option(
        None, "--command", "-c", help="Run a single command instead of an interactive shell."
    ),
    tty: bool = typer.Option(False, "--tty", "-t", help="Request a PTY for --command as well."),
    term: Optional[str] = typer.Option(None, "--term", help="Terminal type for the PTY request."),
    ssh_config: Optional[Path] = typer.Option(
        None, "--ssh-config", "-F", help="OpenSSH client config used to resolve host aliases.", dir_okay=False
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Path to the tacoshell settings JSON file.", dir_okay=False
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Print the resolved host block and exit without connecting."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also log to a daily-rotated file."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
):
    settings_file = _load_config(config)
    _configure_logging(settings_file, verbose, quiet, log_file)
    cli_ctx = _build_context(
        host, username, password, port, identity, passphrase, agent, ssh_config, settings_file
    )

    if show_config:
        typer.echo(cli_ctx.resolved.to_host_config().to_string(0), nl=False)
        return

    try:
        term = term or settings_file.get_str("term")
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)

    session = _connect(cli_ctx)
    try:
        if command is not None:
            status = run_command(
                session,
                command,
                stdin=sys.stdin.buffer,
                stdout=sys.stdout.buffer,
                stderr=sys.stderr.buffer,
                tty=tty,
                term=term,
            )
        else:
            status = run_interactive_shell(
                session, stdin=sys.stdin.buffer, stdout=sys.stdout.buffer, term=term
            )
    except TacoshellError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
    raise typer.Exit(code=_exit_code(status))


def _get_context(ctx: typer.Context) -> CLIContext:
    cli_ctx: CLIContext = ctx.obj  # type: ignore[assignment]
    if cli_ctx is None:
        typer.echo("CLI context was not initialized; this is unexpected.")
        raise typer.Exit(code=1)
    return cli_ctx


def _get_transfer(ctx: typer.Context) -> SFTPTransfer:
    cli_ctx = _get_context(ctx)
    session = _connect(cli_ctx)
    try:
        transfer = SFTPTransfer(session.sftp())
    except TacoshellError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    ctx.call_on_close(transfer.close)
    return transfer


def _entry_to_dict(entry: FileEntry) -> Dict:
    return {
        "name": entry.name,
        "path": entry.path,
        "is_dir": entry.is_dir,
        "size": entry.size,
        "modified": entry.modified.isoformat() if entry.modified else None,
        "permissions": oct(entry.permissions) if entry.permissions is not None else None,
    }


def _render_entries(entries) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("name")
    table.add_column("type")
    table.add_column("size", justify="right")
    table.add_column("modified")
    table.add_column("mode", style="cyan")
    for entry in entries:
        table.add_row(
            entry.name + ("/" if entry.is_dir else ""),
            "dir" if entry.is_dir else "file",
            str(entry.size),
            entry.modified.strftime("%Y-%m-%d %H:%M") if entry.modified else "",
            f"{entry.permissions:o}" if entry.permissions is not None else "",
        )
    return table


def _progress() -> Progress:
    return Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=Console(stderr=True),
        transient=True,
    )


@sftp_app.callback()
def sftp_main(
    ctx: typer.Context,
    host: str = typer.Argument(..., help="SSH host or ssh config alias."),
    username: Optional[str] = typer.Option(
        None, "--username", "-u", help=f"SSH username [default: {DEFAULT_USERNAME}]"
    ),
    password: str = typer.Option("", "--pass", "-p", help="SSH password."),
    port: Optional[str] = typer.Option(
        None, "--port", "-P", help=f"SSH port [default: {DEFAULT_PORT}]"
    ),
    identity: Optional[Path] = typer.Option(
        None, "--identity", "-i", help="Private key file for public-key authentication.", dir_okay=False
    ),
    passphrase: Optional[str] = typer.Option(None, "--passphrase", help="Passphrase for the private key."),
    agent: bool = typer.Option(False, "--agent", "-A", help="Authenticate with SSH agent identities."),
    ssh_config: Optional[Path] = typer.Option(
        None, "--ssh-config", "-F", help="OpenSSH client config used to resolve host aliases.", dir_okay=False
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Path to the tacoshell settings JSON file.", dir_okay=False
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also log to a daily-rotated file."),
):
    settings_file = _load_config(config)
    _configure_logging(settings_file, verbose, quiet, log_file)
    cli_ctx = _build_context(
        host, username, password, port, identity, passphrase, agent, ssh_config, settings_file
    )
    ctx.obj = cli_ctx
    ctx.call_on_close(cli_ctx.close)


@sftp_app.command("ls")
def list_remote(
    ctx: typer.Context,
    path: str = typer.Argument(".", help="Remote directory to list."),
    json_output: bool = typer.Option(False, "--json", help="Output JSON for scripting."),
):
    transfer = _get_transfer(ctx)
    try:
        entries = transfer.list_dir(path)
    except TacoshellError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(json.dumps([_entry_to_dict(entry) for entry in entries], indent=2))
        return
    console.print(_render_entries(entries))


@sftp_app.command("stat")
def stat_remote(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Remote path to inspect."),
    json_output: bool = typer.Option(False, "--json", help="Output JSON for scripting."),
):
    transfer = _get_transfer(ctx)
    try:
        entry = transfer.stat(path)
    except TacoshellError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(json.dumps(_entry_to_dict(entry), indent=2))
        return
    console.print(_render_entries([entry]))


@sftp_app.command()
def get(
    ctx: typer.Context,
    remote: str = typer.Argument(..., help="Remote file to download."),
    local: Optional[str] = typer.Argument(None, help="Local destination (file or directory)."),
):
    transfer = _get_transfer(ctx)
    with _progress() as progress:
        task = progress.add_task(f"get {remote}", total=None)
        try:
            written = transfer.download(
                remote,
                local,
                progress=lambda done, total: progress.update(task, completed=done, total=total),
            )
        except TacoshellError as exc:
            progress.stop()
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1)
    typer.echo(f"Downloaded '{remote}' to '{written}'.")


@sftp_app.command()
def put(
    ctx: typer.Context,
    local: str = typer.Argument(..., help="Local file to upload."),
    remote: Optional[str] = typer.Argument(None, help="Remote destination (file or directory)."),
):
    transfer = _get_transfer(ctx)
    with _progress() as progress:
        task = progress.add_task(f"put {local}", total=None)
        try:
            written = transfer.upload(
                local,
                remote,
                progress=lambda done, total: progress.update(task, completed=done, total=total),
            )
        except TacoshellError as exc:
            progress.stop()
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1)
    typer.echo(f"Uploaded '{local}' to '{written}'.")


@sftp_app.command()
def mkdir(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Remote directory to create."),
    mode: str = typer.Option("755", "--mode", "-m", help="Octal permission bits."),
):
    mode_bits = _parse_mode(mode)
    transfer = _get_transfer(ctx)
    try:
        transfer.mkdir(path, mode_bits)
    except TacoshellError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Created '{path}'.")


@sftp_app.command()
def rm(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Remote path to remove."),
    directory: bool = typer.Option(False, "--dir", "-d", help="Remove an empty directory."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
):
    if not yes:
        if not typer.confirm(f"Remove '{path}'?", default=False):
            typer.echo("Canceled.")
            return
    transfer = _get_transfer(ctx)
    try:
        if directory:
            transfer.remove_dir(path)
        else:
            transfer.remove_file(path)
    except TacoshellError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Removed '{path}'.")


def run() -> None:
    app()


def run_sftp() -> None:
    sftp_app()


if __name__ == "__main__":
    run()
