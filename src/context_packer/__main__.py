"""Module entrypoint for ``python -m context_packer``."""

from __future__ import annotations

from context_packer.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
