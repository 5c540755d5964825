"""Search front-end service package bootstrap.

Environment variables defined in the repository's `.env` files are loaded
before the rest of the application imports configuration values, otherwise
`config.py` would capture its defaults when the process is started without a
sourced environment (for example when running `uvicorn` directly).
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv


def _load_dotenv_files() -> None:
	repo_root = Path(__file__).resolve().parents[2]
	candidates = (
		repo_root / "vdsearch" / ".env",
		repo_root / "vdsearch" / ".env.local",
		repo_root / ".env",
	)

	for candidate in candidates:
		if candidate.exists():
			load_dotenv(dotenv_path=candidate, override=False)


_load_dotenv_files()

__all__ = []
