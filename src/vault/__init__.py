from .file_vault import FileVault, VaultInterface

__all__ = ["FileVault", "VaultInterface"]
