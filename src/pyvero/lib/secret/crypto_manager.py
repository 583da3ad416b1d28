# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import base64
import contextlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cryptography.fernet import Fernet, InvalidToken


class SecretCryptoError(Exception):
    """
    Raised when an appliance password cannot be encrypted or decrypted:
    missing or malformed key, malformed token, or failed integrity check.
    """


@dataclass(frozen=True, slots=True)
class SecretToken:
    version: str
    payload: str


class SecretCryptoManager:
    """
    Fernet Encryption For The Appliance Password Stored In system.json.

    Tokens look like ``ENC[v1]:<fernet-token>``. The key never lives in the
    config; it is read from ``~/.ssh/pyvero_secrets.key`` or, when that file
    is absent, from the ``PYVERO_SECRET_KEY`` environment variable.
    """

    DEFAULT_ENV_VAR_NAME    = "PYVERO_SECRET_KEY"
    DEFAULT_KEY_FILE_NAME   = "pyvero_secrets.key"
    DEFAULT_TOKEN_VERSION   = "v1"
    TOKEN_PREFIX            = "ENC"
    SSH_DIR_NAME            = ".ssh"

    FERNET_KEY_SIZE_BYTES   = 32
    KEY_FILE_PERMISSIONS    = 0o600
    SSH_DIR_PERMISSIONS     = 0o700

    @classmethod
    def default_key_path(cls) -> Path:
        return Path.home() / cls.SSH_DIR_NAME / cls.DEFAULT_KEY_FILE_NAME

    @classmethod
    def is_token(cls, value: str) -> bool:
        return value.strip().startswith(f"{cls.TOKEN_PREFIX}[")

    @classmethod
    def build_token(cls, payload: str, version: str = DEFAULT_TOKEN_VERSION) -> str:
        return f"{cls.TOKEN_PREFIX}[{version}]:{payload}"

    @classmethod
    def parse_token(cls, token: str) -> SecretToken:
        """
        Split ``ENC[vX]:<payload>`` into its version and payload.

        Raises
        ------
        SecretCryptoError
            If the prefix, delimiter, version or payload is missing.
        """
        if not cls.is_token(token):
            raise SecretCryptoError("Encrypted token missing expected 'ENC[...]:...' prefix.")

        head, sep, payload = token.strip().partition("]:")
        if sep == "":
            raise SecretCryptoError("Encrypted token missing closing ']:' delimiter.")

        version = head[len(cls.TOKEN_PREFIX) + 1:].strip()
        if version == "":
            raise SecretCryptoError("Encrypted token version is empty.")
        if payload.strip() == "":
            raise SecretCryptoError("Encrypted token payload is empty.")

        return SecretToken(version=version, payload=payload.strip())

    @staticmethod
    def generate_key_b64() -> str:
        return Fernet.generate_key().decode("utf-8")

    @classmethod
    def validate_key_b64(cls, key_b64: str) -> None:
        key_str = key_b64.strip()
        if key_str == "":
            raise SecretCryptoError("Secret key is empty.")

        try:
            raw = base64.urlsafe_b64decode(key_str.encode("utf-8"))
        except ValueError as exc:
            raise SecretCryptoError(f"Secret key is not valid base64: {exc}") from exc

        if len(raw) != cls.FERNET_KEY_SIZE_BYTES:
            raise SecretCryptoError(
                f"Secret key decoded size is invalid: {len(raw)} bytes (expected {cls.FERNET_KEY_SIZE_BYTES})."
            )

    @classmethod
    def write_key_file(cls, key_path: Path, key_b64: str) -> Path:
        """Write a validated key with owner-only permissions."""
        cls.validate_key_b64(key_b64)
        key_path.parent.mkdir(parents=True, exist_ok=True)

        with contextlib.suppress(OSError):
            os.chmod(key_path.parent, cls.SSH_DIR_PERMISSIONS)

        key_path.write_text(key_b64.strip() + "\n", encoding="utf-8")

        with contextlib.suppress(OSError):
            os.chmod(key_path, cls.KEY_FILE_PERMISSIONS)

        return key_path

    @classmethod
    def load_key_bytes(cls, key_path: Path | None = None, env_var_name: str = DEFAULT_ENV_VAR_NAME) -> bytes:
        """
        Resolve the key: the key file first, then the environment variable.
        """
        path = key_path if key_path is not None else cls.default_key_path()
        if path.is_file():
            key_b64 = path.read_text(encoding="utf-8").strip()
            cls.validate_key_b64(key_b64)
            return key_b64.encode("utf-8")

        env_value = os.environ.get(env_var_name, "").strip()
        if env_value != "":
            cls.validate_key_b64(env_value)
            return env_value.encode("utf-8")

        raise SecretCryptoError(
            f"Missing secret key. Provide key file '{path}' or set environment variable '{env_var_name}'."
        )

    @classmethod
    def encrypt_password(cls, password: str, key_path: Path | None = None,
                         env_var_name: str = DEFAULT_ENV_VAR_NAME) -> str:
        clear = password.strip()
        if clear == "":
            raise SecretCryptoError("Password is empty; refusing to encrypt empty value.")

        fernet = Fernet(cls.load_key_bytes(key_path, env_var_name))
        return cls.build_token(fernet.encrypt(clear.encode("utf-8")).decode("utf-8"))

    @classmethod
    def decrypt_password(cls, token: str, key_path: Path | None = None,
                         env_var_name: str = DEFAULT_ENV_VAR_NAME,
                         accepted_versions: tuple[str, ...] = (DEFAULT_TOKEN_VERSION,)) -> str:
        parsed = cls.parse_token(token)
        if parsed.version not in accepted_versions:
            raise SecretCryptoError(
                f"Unsupported encrypted token version '{parsed.version}'. Allowed: {', '.join(accepted_versions)}"
            )

        fernet = Fernet(cls.load_key_bytes(key_path, env_var_name))
        try:
            clear = fernet.decrypt(parsed.payload.encode("utf-8")).decode("utf-8").strip()
        except InvalidToken as exc:
            raise SecretCryptoError("Failed to decrypt password: invalid token or wrong secret key.") from exc

        if clear == "":
            raise SecretCryptoError("Decrypted password is empty; token or key may be invalid.")
        return clear

    @classmethod
    def encrypt_appliance_secrets(cls, config: dict[str, Any], key_path: Path | None = None) -> dict[str, Any]:
        """
        Move a clear-text ``Appliance.password`` into ``Appliance.password_enc``.

        The clear ``password`` key is always dropped. Values that are
        already tokens are kept as they are.
        """
        appliance = config.get("Appliance")
        if not isinstance(appliance, dict):
            return config

        password_enc = str(appliance.get("password_enc", "") or "").strip()
        password     = str(appliance.pop("password", "") or "").strip()
        source       = password_enc or password

        if source == "" or cls.is_token(source):
            appliance["password_enc"] = source
        else:
            appliance["password_enc"] = cls.encrypt_password(source, key_path=key_path)

        return config
