"""Helpers for the SEV secret kernel module and securityfs."""

from __future__ import annotations

import subprocess

SECRET_MODULE_NAME = "efi_secret"
MODPROBE_PATH = "/sbin/modprobe"
MOUNT_PATH = "/bin/mount"


class SevError(Exception):
    """Raised when a system command needed for SEV secrets fails."""


def _run(args: list[str]) -> int:
    try:
        return subprocess.run(args, check=False).returncode
    except OSError as exc:
        raise SevError(f"Failed to run {args[0]}: {exc}") from exc


class SecretKernelModule:
    """Loads the secret kernel module; unloads it on exit or ``unload()``."""

    def __init__(self) -> None:
        if _run([MODPROBE_PATH, SECRET_MODULE_NAME]) != 0:
            raise SevError("Failed to load secret module.")
        self._loaded = True

    def unload(self) -> None:
        """Remove the secret kernel module."""
        if not self._loaded:
            return
        try:
            subprocess.run([MODPROBE_PATH, "-r", SECRET_MODULE_NAME], check=False)
        except OSError as exc:
            raise SevError("Failed to unload secret module.") from exc
        self._loaded = False

    def __enter__(self) -> SecretKernelModule:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unload()


def mount_security_fs() -> None:
    """Mount securityfs at /sys/kernel/security."""
    args = [MOUNT_PATH, "-t", "securityfs", "securityfs", "/sys/kernel/security"]
    if _run(args) != 0:
        raise SevError("Failed to mount security fs")