"""Second Brain CLI: init, serve and owner management.

Usage:
    secondbrain init                 # FastEmbed (default, zero cloud)
    secondbrain init --openai        # OpenAI embeddings (prompts for key)
    secondbrain serve                # Start the HTTP server
    secondbrain owner add alice      # Register an owner, print its id
"""

import argparse
import asyncio
import os
import secrets
import sys
from pathlib import Path

BRAIN_DIR = Path.home() / ".second-brain"
CONFIG_FILE = BRAIN_DIR / "config.yaml"
ENV_FILE = BRAIN_DIR / ".env"

FASTEMBED_CONFIG_TEMPLATE = """\
# Second Brain Configuration - FastEmbed (local embeddings)
# Secrets live in ~/.second-brain/.env, not here.

embedding:
  provider: fastembed
  model: sentence-transformers/all-MiniLM-L6-v2
  dimensions: 384

db:
  path: {db_path}
  vector_provider: lancedb
  vector_path: {vector_path}

server:
  host: 127.0.0.1
  port: 3000

search:
  top_k: 5
  min_similarity: 0.4
"""

OPENAI_CONFIG_TEMPLATE = """\
# Second Brain Configuration - OpenAI Embeddings
# Secrets live in ~/.second-brain/.env, not here.

embedding:
  provider: openai
  model: text-embedding-3-small
  dimensions: 1536

db:
  path: {db_path}
  vector_provider: lancedb
  vector_path: {vector_path}

server:
  host: 127.0.0.1
  port: 3000

search:
  top_k: 5
  min_similarity: 0.4
"""


def _read_env_file() -> dict[str, str]:
    values: dict[str, str] = {}
    if not ENV_FILE.exists():
        return values
    for line in ENV_FILE.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            k, _, v = line.partition("=")
            values[k.strip()] = v.strip()
    return values


def _write_env_file(key: str, value: str) -> None:
    """Write or update a key in ~/.second-brain/.env.

    The file is created with 600 permissions (owner-only read/write).
    """
    ENV_FILE.parent.mkdir(parents=True, exist_ok=True)

    existing = _read_env_file()
    existing[key] = value

    content = "# Second Brain secrets - auto-generated, do not commit\n"
    for k, v in existing.items():
        content += f"{k}={v}\n"

    ENV_FILE.write_text(content)
    ENV_FILE.chmod(0o600)


def load_env_file() -> None:
    """Load ~/.second-brain/.env into os.environ if it exists.

    Explicitly exported variables win over the file.
    """
    for k, v in _read_env_file().items():
        if k not in os.environ:
            os.environ[k] = v


def _prompt_api_key() -> str:
    """Prompt for an OpenAI API key, or take OPENAI_API_KEY without a TTY."""
    env_key = os.environ.get("OPENAI_API_KEY", "")
    if sys.stdin.isatty():
        prompt_msg = "Enter your OpenAI API key"
        if env_key:
            masked = env_key[:7] + "..." + env_key[-4:]
            prompt_msg += f" [{masked}]"
        prompt_msg += ": "
        user_input = input(prompt_msg).strip()
        if user_input:
            return user_input
        if env_key:
            return env_key
        print("No API key provided.")
        sys.exit(1)
    if env_key:
        return env_key
    print("--openai requires OPENAI_API_KEY (no TTY for prompt).")
    sys.exit(1)


def _load_config(config_path=None):
    from .server.config import SecondBrainConfig

    if config_path:
        return SecondBrainConfig.from_file(config_path)
    return SecondBrainConfig.from_env()


def cmd_init(args: argparse.Namespace) -> int:
    """Write a config template and generate the token secret."""
    BRAIN_DIR.mkdir(parents=True, exist_ok=True)

    if CONFIG_FILE.exists() and not args.force:
        print(f"Config already exists: {CONFIG_FILE}")
        print("   Use --force to overwrite.")
        return 1

    template = OPENAI_CONFIG_TEMPLATE if args.openai else FASTEMBED_CONFIG_TEMPLATE
    api_key = _prompt_api_key() if args.openai else None

    CONFIG_FILE.write_text(template.format(
        db_path=str(BRAIN_DIR / "brain.db"),
        vector_path=str(BRAIN_DIR / "lancedb"),
    ))
    print(f"Config written: {CONFIG_FILE}")

    if api_key:
        _write_env_file("OPENAI_API_KEY", api_key)
        print(f"API key saved to {ENV_FILE} (600 permissions)")

    env_values = _read_env_file()
    if "SECOND_BRAIN_SECRET_KEY" not in env_values and not os.environ.get("SECOND_BRAIN_SECRET_KEY"):
        _write_env_file("SECOND_BRAIN_SECRET_KEY", secrets.token_urlsafe(32))
        print(f"Token secret generated in {ENV_FILE}")

    youtube_key = os.environ.get("YOUTUBE_API_KEY")
    if youtube_key and "YOUTUBE_API_KEY" not in env_values:
        _write_env_file("YOUTUBE_API_KEY", youtube_key)
    elif not youtube_key and "YOUTUBE_API_KEY" not in env_values:
        print()
        print("Set YOUTUBE_API_KEY (or add it to the .env file) before serving.")

    print()
    print("Start the server:")
    print("   secondbrain serve")
    return 0


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the HTTP server."""
    # Load .env before config so secrets are in os.environ
    load_env_file()

    from .server.app import run_server

    config = _load_config(args.config)

    run_server(
        config=config,
        host=args.host,
        port=args.port,
        log_level=args.log_level or "info",
    )


def cmd_owner_add(args: argparse.Namespace) -> int:
    """Register an owner in the document store and print its id."""
    load_env_file()

    from .errors import SecondBrainError
    from .services.document_store import SQLiteDocumentStore

    config = _load_config(args.config)
    if config.db.path != ":memory:":
        Path(config.db.path).parent.mkdir(parents=True, exist_ok=True)

    with SQLiteDocumentStore(config.db.path) as store:
        try:
            owner = asyncio.run(store.create_owner(args.username))
        except SecondBrainError as e:
            print(f"Could not add owner: {e.message}")
            return 1

    print(owner.id)
    return 0


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="secondbrain",
        description="Second Brain - save, tag and search links to videos",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init
    init_parser = subparsers.add_parser("init", help="Write a config template")
    init_parser.add_argument("--openai", action="store_true",
                             help="Use OpenAI embeddings (prompts for API key)")
    init_parser.add_argument("--force", action="store_true",
                             help="Overwrite existing config")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument("--host", type=str, default=None)
    serve_parser.add_argument("--port", "-p", type=int, default=None)
    serve_parser.add_argument("--config", "-c", type=str, default=None)
    serve_parser.add_argument("--log-level", type=str, default=None,
                              choices=["debug", "info", "warning", "error"])

    # owner
    owner_parser = subparsers.add_parser("owner", help="Manage owners")
    owner_sub = owner_parser.add_subparsers(dest="owner_command")
    owner_add = owner_sub.add_parser("add", help="Register an owner")
    owner_add.add_argument("username", type=str)
    owner_add.add_argument("--config", "-c", type=str, default=None)

    args = parser.parse_args()

    if args.command == "init":
        sys.exit(cmd_init(args))
    elif args.command == "serve":
        cmd_serve(args)
    elif args.command == "owner" and args.owner_command == "add":
        sys.exit(cmd_owner_add(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
