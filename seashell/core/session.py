"""SSH 会话：把解析好的连接参数交给 asyncssh"""

import asyncio
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import asyncssh
import click

from seashell.core.errors import TransportFailure
from seashell.core.models import ResolvedProfile

logger = logging.getLogger(__name__)

DEFAULT_TERM = "xterm"
DEFAULT_SSH_PORT = 22


class SeashellClient(asyncssh.SSHClient):
    """交互式认证回调，密码和 keyboard-interactive 由终端输入"""

    def __init__(self, profile: ResolvedProfile):
        self.profile = profile

    def auth_completed(self):
        logger.info(f"Authenticated to {self.profile.address} as {self.profile.user}")

    def password_auth_requested(self):
        return click.prompt(
            f"{self.profile.user}@{self.profile.address}'s password",
            hide_input=True,
            err=True,
        )

    def validate_host_public_key(self, host, addr, port, key):
        return check_host_key(self.profile, key, addr)

    def kbdint_auth_requested(self):
        return ""

    def kbdint_challenge_received(self, name, instructions, lang, prompts):
        if name:
            click.echo(name, err=True)
        if instructions:
            click.echo(instructions, err=True)
        return [
            click.prompt(prompt.rstrip(": "), hide_input=not echo, err=True)
            for prompt, echo in prompts
        ]


def ensure_known_hosts(path: str) -> str:
    known_hosts = Path(path)
    if not known_hosts.exists():
        logger.info(f"Creating empty known_hosts file {known_hosts}")
        known_hosts.parent.mkdir(parents=True, exist_ok=True)
        known_hosts.touch(mode=0o600)
    return str(known_hosts)


def known_hosts_name(host: str, port: int) -> str:
    return host if port == DEFAULT_SSH_PORT else f"[{host}]:{port}"


def check_host_key(profile: ResolvedProfile, key: asyncssh.SSHKey, addr: str = "") -> bool:
    """首次连接时询问是否信任主机密钥，已知主机的密钥发生变化时拒绝连接"""
    port = None if profile.port == DEFAULT_SSH_PORT else profile.port
    trusted = asyncssh.read_known_hosts(profile.known_hosts).match(profile.address, addr, port)[0]
    if key in trusted:
        return True

    algorithm = key.get_algorithm()
    fingerprint = key.get_fingerprint()
    name = known_hosts_name(profile.address, profile.port)

    if trusted:
        logger.warning(f"Host key for {name} does not match '{profile.known_hosts}'")
        click.echo(
            f"WARNING: the {algorithm} host key of {name} has changed ({fingerprint}).\n"
            f"Someone could be eavesdropping on you (man-in-the-middle attack).\n"
            f"Remove the old key from '{profile.known_hosts}' if the change is expected.",
            err=True,
        )
        return False

    click.echo(f"The authenticity of host {name} can't be established.", err=True)
    click.echo(f"{algorithm} key fingerprint is {fingerprint}.", err=True)
    answer = click.prompt(
        "Trust and add to 'known_hosts'? (yes/no/[fingerprint])",
        default="no",
        show_default=False,
        err=True,
    ).strip()
    if answer.lower() not in ("y", "yes") and answer != fingerprint:
        logger.info(f"Host key for {name} rejected")
        return False

    trust_host(profile, key)
    return True


def trust_host(profile: ResolvedProfile, key: asyncssh.SSHKey):
    algorithm, data = key.export_public_key("openssh").decode("ascii").split()[:2]
    with open(profile.known_hosts, "a", encoding="utf-8") as f:
        f.write(f"{known_hosts_name(profile.address, profile.port)} {algorithm} {data}\n")
    logger.info(f"Added host key for {profile.address} to {profile.known_hosts}")


def connect_options(profile: ResolvedProfile) -> Dict[str, Any]:
    """ResolvedProfile 到 asyncssh.connect 参数的映射，空的算法列表使用库默认值"""
    connect_kwargs = {
        "host": profile.address,
        "port": profile.port,
        "username": profile.user,
        "known_hosts": ensure_known_hosts(profile.known_hosts),
        "connect_timeout": profile.timeout or None,
        "keepalive_interval": profile.interval,
        "keepalive_count_max": profile.retries,
    }

    if profile.private_key:
        connect_kwargs["client_keys"] = [profile.private_key]
        if profile.openssh_cert:
            connect_kwargs["client_certs"] = [profile.openssh_cert]

    algorithms = {
        "kex_algs": profile.kex,
        "server_host_key_algs": profile.alg,
        "signature_algs": profile.alg,
        "encryption_algs": profile.cipher,
        "mac_algs": profile.mac,
    }
    for option, names in algorithms.items():
        if names:
            connect_kwargs[option] = list(names)

    return connect_kwargs


def open_session(profile: ResolvedProfile, command: Optional[str] = None) -> int:
    """连接服务器，执行命令或打开交互式 shell，返回远程退出码"""
    try:
        return asyncio.run(_run(profile, command))
    except (asyncssh.Error, OSError) as e:
        raise TransportFailure(f"Connection to {profile.destination} failed: {e}") from e


async def _run(profile: ResolvedProfile, command: Optional[str]) -> int:
    logger.info(f"Connecting to {profile.address}:{profile.port}...")
    async with asyncssh.connect(
        client_factory=lambda: SeashellClient(profile), **connect_options(profile)
    ) as conn:
        if command:
            logger.info(f"Executing command '{command}'...")
            result = await conn.run(
                command, stdin=asyncssh.DEVNULL, stdout=sys.stdout, stderr=sys.stderr, check=False
            )
        else:
            result = await _interactive(conn)

    if command is None:
        click.echo(f"Connection to {profile.address} closed.", err=True)
    return result.exit_status or 0


async def _interactive(conn: asyncssh.SSHClientConnection):
    logger.info("Preparing interactive session...")
    term = os.environ.get("TERM", DEFAULT_TERM)
    size = shutil.get_terminal_size()

    if not sys.stdin.isatty():
        return await conn.run(
            term_type=term, stdin=sys.stdin, stdout=sys.stdout, stderr=sys.stderr, check=False
        )

    import termios
    import tty

    fd = sys.stdin.fileno()
    saved = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        return await conn.run(
            term_type=term,
            term_size=(size.columns, size.lines),
            stdin=sys.stdin,
            stdout=sys.stdout,
            stderr=sys.stderr,
            check=False,
        )
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
