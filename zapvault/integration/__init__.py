"""
Vault orchestration and configuration
"""

from .config import VaultConfig, config_from_mapping, configure_logging, load_config
from .vault import VaultCollaborators, VaultCommand, VaultStepResult, ZapVault

__all__ = [
    "VaultConfig",
    "config_from_mapping",
    "configure_logging",
    "load_config",
    "VaultCollaborators",
    "VaultCommand",
    "VaultStepResult",
    "ZapVault",
]
