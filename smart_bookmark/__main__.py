"""Entry point for the Smart Bookmark CLI."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import CONFIG_PATH, LOG_PATH, Config, load_config
from .log import logger, setup_logging

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Environment health checks
# ---------------------------------------------------------------------------

_REQUIRED_LIBS = [
    ("textual", "textual"),
    ("rich", "rich"),
    ("yaml", "pyyaml"),
    ("fastapi", "fastapi"),
    ("uvicorn", "uvicorn"),
    ("supabase", "supabase"),
    ("httpx", "httpx"),
]


def _run_doctor(config: Config, config_path: Path) -> None:
    """Print a detailed environment health report and exit."""

    print("Smart Bookmark -- Environment Doctor\n")

    # 1. Python
    print(f"  Python:   {sys.executable} ({sys.version.split()[0]})")

    # 2. Required libraries
    print()
    all_ok = True
    for mod_name, pkg_name in _REQUIRED_LIBS:
        try:
            mod = __import__(mod_name)
            ver = getattr(mod, "__version__", "installed")
            print(f"  [ok] {pkg_name:30s}  {ver}")
        except ImportError:
            print(f"  [!!] {pkg_name:30s}  NOT IMPORTABLE")
            all_ok = False

    # 3. Configuration
    print()
    print(f"  [--] {'Config file':30s}  {config_path}")
    if config.backend.configured:
        print(f"  [ok] {'Supabase project':30s}  {config.backend.url}")
    else:
        print(f"  [!!] {'Supabase project':30s}  url/anon_key not set")
        all_ok = False
    print(f"  [--] {'Sign-in redirect':30s}  {config.redirect_url}")

    # 4. Stored session
    if config.session_path.exists():
        print(f"  [ok] {'Stored session':30s}  {config.session_path}")
    else:
        print(f"  [--] {'Stored session':30s}  none (signed out)")

    # Summary
    print()
    if all_ok:
        print("  All checks passed.")
    else:
        print("  Some checks failed.  Set backend.url and backend.anon_key in")
        print(f"    {config_path}")
        print("  or export SUPABASE_URL and SUPABASE_ANON_KEY.")

    sys.exit(0 if all_ok else 1)


def _sign_out_local(config: Config) -> None:
    """Forget the stored session without contacting the backend."""
    from .backend.token_store import FileTokenStorage

    FileTokenStorage(config.session_path).clear()
    print("Signed out.")


def main(argv: list[str] | None = None) -> None:
    """Run Smart Bookmark."""
    parser = argparse.ArgumentParser(description="Smart Bookmark")
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"smart-bookmark {VERSION}",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help=f"Config file (default: {CONFIG_PATH})",
    )
    parser.add_argument(
        "--doctor",
        action="store_true",
        help="Check environment health and exit",
    )
    parser.add_argument(
        "--sign-out",
        action="store_true",
        help="Forget the stored session and exit",
    )
    parser.add_argument(
        "--web",
        action="store_true",
        help="Launch web interface instead of TUI",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8765,
        help="Web server port (default: 8765)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level",
    )

    args = parser.parse_args(argv)

    setup_logging(LOG_PATH, logging.DEBUG if args.debug else logging.INFO)
    config_path = args.config or CONFIG_PATH
    config = load_config(config_path)

    # --doctor: print diagnostics and exit
    if args.doctor:
        _run_doctor(config, config_path)
        return

    if args.sign_out:
        _sign_out_local(config)
        return

    if not config.backend.configured:
        print(
            "Supabase is not configured.  Set backend.url and backend.anon_key in\n"
            f"  {config_path}\n"
            "or export SUPABASE_URL and SUPABASE_ANON_KEY, then run\n"
            "'smart-bookmark --doctor' to check.",
            file=sys.stderr,
        )
        sys.exit(1)

    # --web: launch web interface instead of TUI
    if args.web:
        try:
            from smart_bookmark.web import main as web_main

            web_main(config, port=args.port)
        except (KeyboardInterrupt, SystemExit):
            pass
        return

    try:
        from smart_bookmark.app import run_app

        run_app(config)
    except (KeyboardInterrupt, SystemExit):
        pass
    except Exception:
        logger.debug("Fatal error in smart-bookmark", exc_info=True)
        import traceback

        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
