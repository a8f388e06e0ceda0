"""Pre-flight checks for a relay deployment.

Three subcommands share one ``--env-file`` option:

``record``
    Validate the settings and write a ``sha256sum``-style baseline for the
    ``.env`` file.
``verify``
    Validate the settings and fail when the ``.env`` file no longer matches
    the baseline. Rotating ``ENCRYPTION_KEY`` by accident orphans the token
    file, so this is worth running from cron or a systemd timer.
``check``
    Validate the settings and open the token file with the configured key.

Example::

    python -m scripts.check_env record --env-file /srv/tiktok-relay/.env \
        --hash-file /srv/tiktok-relay/.env.sha256
    python -m scripts.check_env check --env-file /srv/tiktok-relay/.env
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from tiktok_relay.clients.token_store import (
    EncryptedFileTokenStore,
    TokenStoreCorruptedError,
)
from tiktok_relay.core.config import AppSettings, _load_env_file
from tiktok_relay.services.token_cipher import TokenCipherService

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_TOKEN_STORE_ERROR = 4
EXIT_RUNTIME_ERROR = 5


def _fail(message: str, code: int) -> int:
    print(message, file=sys.stderr)
    return code


def _digest(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def _read_baseline(hash_file: Path) -> str | None:
    """Return the digest column of a ``<digest>  <name>`` baseline line."""
    fields = hash_file.read_text(encoding="utf-8").split()
    return fields[0] if fields else None


def _load_settings(env_file: Path) -> AppSettings:
    """Load settings with ``env_file`` layered under the process environment."""
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def record_baseline(env_file: Path, hash_file: Path) -> int:
    digest = _digest(env_file)
    hash_file.write_text(f"{digest}  {env_file.name}\n", encoding="utf-8")
    print(f"Baseline for {env_file} written to {hash_file}")
    return EXIT_OK


def verify_baseline(env_file: Path, hash_file: Path) -> int:
    if not hash_file.is_file():
        return _fail(
            f"No baseline at {hash_file}; run 'record' first.", EXIT_RUNTIME_ERROR
        )

    recorded = _read_baseline(hash_file)
    if recorded is None:
        return _fail(
            f"Baseline {hash_file} is empty; run 'record' again.", EXIT_RUNTIME_ERROR
        )
    current = _digest(env_file)
    if recorded != current:
        return _fail(
            f"{env_file} changed since the baseline was recorded "
            f"(recorded {recorded[:12]}, now {current[:12]}). "
            "If ENCRYPTION_KEY moved, the stored TikTok tokens can no longer be read.",
            EXIT_CHECKSUM_ERROR,
        )
    print(f"{env_file} matches its baseline.")
    return EXIT_OK


def check_token_store(settings: AppSettings) -> int:
    """Confirm ENCRYPTION_KEY still opens the persisted token file, if any."""
    store = EncryptedFileTokenStore(
        settings.security.token_store_path,
        TokenCipherService(secret=settings.security.encryption_key),
    )
    try:
        record = store.load()
    except TokenStoreCorruptedError as exc:
        return _fail(f"Token store check failed: {exc}", EXIT_TOKEN_STORE_ERROR)

    if record is None:
        print(f"No token file at {store.path}; log in via /auth/login.")
    else:
        print(f"Token file {store.path} decrypts with the configured key.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="check_env", description="Pre-flight checks for the TikTok relay."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    for name, summary, needs_baseline in (
        ("record", "validate settings and write the .env baseline", True),
        ("verify", "validate settings and compare .env with the baseline", True),
        ("check", "validate settings and decrypt the token file", False),
    ):
        sub = commands.add_parser(name, help=summary)
        sub.add_argument("--env-file", type=Path, default=Path(".env"))
        if needs_baseline:
            sub.add_argument("--hash-file", type=Path, required=True)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.is_file():
        return _fail(f"{env_file} not found.", EXIT_RUNTIME_ERROR)

    try:
        settings = _load_settings(env_file)
    except ValidationError as exc:
        missing = ", ".join(
            str(error["loc"][-1]) for error in exc.errors() if error.get("loc")
        )
        return _fail(
            f"Settings in {env_file} are incomplete or invalid: {missing or exc}",
            EXIT_VALIDATION_ERROR,
        )

    commands: dict[str, Callable[[], int]] = {
        "record": lambda: record_baseline(env_file, args.hash_file),
        "verify": lambda: verify_baseline(env_file, args.hash_file),
        "check": lambda: check_token_store(settings),
    }
    return commands[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
