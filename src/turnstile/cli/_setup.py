"""``turnstile setup``: prepare a project directory.

Creates the log directory and copies ``.env.example`` to ``.env`` when
``.env`` does not exist yet. Never overwrites an existing ``.env``.
"""

import argparse
import shutil
from pathlib import Path


def setup_project(root: Path, log_dir: str = "storage/logs") -> list[str]:
    """Prepare *root* and return one message per step taken."""
    messages: list[str] = []

    logs = root / log_dir
    if not logs.exists():
        logs.mkdir(parents=True)
        messages.append(f"Created {log_dir} directory.")

    example = root / ".env.example"
    env = root / ".env"
    if env.exists():
        messages.append(".env file already exists, skipping.")
    elif example.exists():
        shutil.copyfile(example, env)
        messages.append("Copied .env.example to .env.")
    else:
        messages.append("Warning: .env.example not found!")

    return messages


def run_setup(args: argparse.Namespace) -> None:
    print("Setting up the project...")
    for message in setup_project(Path(args.dir), args.log_dir):
        print(message)
    print("Setup complete! You can now configure your .env file.")
