"""Build ``ssh`` command lines for hosts."""

from sshbuddy.models import DEFAULT_PORT, Host


def escape_for_double_quotes(path: str) -> str:
    """Escape ``path`` for use inside a double-quoted remote shell string.

    A leading ``~`` becomes ``$HOME`` because tilde does not expand inside
    double quotes. ``$`` is left alone so variables still expand.
    """
    if path == "~":
        path = "$HOME"
    elif path.startswith("~/"):
        path = "$HOME/" + path[2:]

    path = path.replace("\\", "\\\\")
    path = path.replace('"', '\\"')
    path = path.replace("`", "\\`")
    return path


def build_ssh_command(host: Host) -> list[str]:
    """Return the argument vector that connects to ``host``.

    With a default remote path the session starts a login shell in that
    directory.
    """
    args = ["ssh", "-p", host.port or DEFAULT_PORT]

    if host.identity_file:
        args += ["-i", host.identity_file]

    if host.proxy_jump:
        args += ["-J", host.proxy_jump]

    if host.default_remote_path:
        args.append("-t")

    # A destination starting with "-" would be read as an option.
    if host.target.startswith("-"):
        args.append("--")

    args.append(host.target)
    if host.default_remote_path:
        args.append(f'cd "{escape_for_double_quotes(host.default_remote_path)}" && exec $SHELL -l')

    return args
