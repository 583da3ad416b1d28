#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pyvero.config.config_manager import ConfigManager
from pyvero.lib.secret.crypto_manager import SecretCryptoError, SecretCryptoManager


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Move the clear-text appliance password in system.json to an ENC[v1] token."
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to system.json (default: the packaged settings file).",
    )
    parser.add_argument(
        "--key-path",
        default=None,
        help="Secret key file (default: ~/.ssh/pyvero_secrets.key).",
    )
    parser.add_argument(
        "--generate-key",
        action="store_true",
        help="Create the key file first when it does not exist.",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    key_path = Path(args.key_path).expanduser() if args.key_path else SecretCryptoManager.default_key_path()

    if args.generate_key and not key_path.exists():
        SecretCryptoManager.write_key_file(key_path, SecretCryptoManager.generate_key_b64())
        print(f"Wrote new key: {key_path}")

    cfg = ConfigManager(args.config)
    try:
        updated = SecretCryptoManager.encrypt_appliance_secrets(cfg.as_dict(), key_path=key_path)
    except SecretCryptoError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    cfg.save(updated)
    print(f"Updated {cfg.get_config_path()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
