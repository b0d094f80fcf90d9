"""Key provider messages, image layer key encryption and decryption, and SEV helpers."""

__version__ = "0.1.0"

__all__ = ["crypto", "encryption", "keyprovider", "message", "service", "sev"]