"""
Env file parsing for the server and client builds.

The client build reads ``.env.client`` the way ``grep -v '^#' | xargs``
would: any line whose first character is ``#`` is dropped, everything else
of the form ``KEY=value`` is exported. Parsing is pure Python; no
``python-dotenv`` dependency.

Two variables are always removed from the front-end build environment
(see :data:`CLIENT_UNSET_VARS`) so the generated client falls back to
relative URLs, which multi-tenant subdomain routing relies on.

Values are taken whole, dotenv style: ``KEY=val # note`` exports
``val # note`` and ``KEY=a b`` exports ``a b``, where ``xargs`` would
have split both on whitespace.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from pathlib import Path

from redeploy.core.errors import StepError

CLIENT_UNSET_VARS: tuple[str, ...] = ("WASP_WEB_CLIENT_URL", "WASP_SERVER_URL")

_VAR_RE = re.compile(
    r"""
    ^                         # start of line
    \s*                       # optional leading whitespace
    (?:export\s+)?            # optional "export " prefix
    (?P<key>[A-Za-z_]\w*)     # variable name
    \s*=\s*                   # equals with optional whitespace
    (?P<value>.*)             # everything after =
    $                         # end of line
    """,
    re.VERBOSE,
)


def parse_env_lines(lines: Iterable[str]) -> dict[str, str]:
    """Parse ``KEY=value`` lines into a mapping.

    Handles:
    * comment lines (first character ``#``) and blank lines
    * ``export VAR=value``
    * quoted values (single or double)

    Lines that are not assignments are ignored. Later keys override
    earlier ones.
    """
    result: dict[str, str] = {}
    for raw in lines:
        if raw.startswith("#") or not raw.strip():
            continue
        match = _VAR_RE.match(raw.rstrip("\r\n"))
        if match is None:
            continue
        value = match.group("value").strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]
        result[match.group("key")] = value
    return result


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a single env file.

    Raises
    ------
    StepError
        If the file cannot be read or is not valid UTF-8.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise StepError(f"Cannot read env file {path}: {exc}", cause=exc).with_context(path=str(path))
    return parse_env_lines(text.splitlines())


def build_client_env(
    base: Mapping[str, str],
    env_file: Path | None,
    unset: Iterable[str] = CLIENT_UNSET_VARS,
) -> dict[str, str]:
    """Return the environment for the front-end build.

    ``base`` is copied, the ``unset`` keys are removed, and the values from
    ``env_file`` are layered on top (skipped when ``env_file`` is None).
    The ``unset`` keys are removed from the result even when the env file
    defines them.
    """
    unset = tuple(unset)
    env = {k: v for k, v in base.items() if k not in unset}
    if env_file is not None:
        env.update(parse_env_file(env_file))
    for key in unset:
        env.pop(key, None)
    return env


__all__ = [
    "CLIENT_UNSET_VARS",
    "build_client_env",
    "parse_env_file",
    "parse_env_lines",
]
