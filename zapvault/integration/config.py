"""
Vault configuration.

Configuration is a frozen dataclass set once at construction. It can be built
from a mapping or loaded from a YAML file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

from ..core.ledger import SCALE
from ..core.slippage import BPS_DENOM, STABLE_SLIPPAGE_BPS, VOLATILE_SLIPPAGE_BPS, SlippagePolicy


@dataclass(frozen=True)
class VaultConfig:
    # Identity the vault uses when holding assets and staking shares.
    account: str = "zap-vault"
    # Pool registry (factory) identity passed to the router with every route.
    registry_id: str = "default-factory"

    # Slippage tolerances in basis points (1/10_000).
    stable_slippage_bps: int = STABLE_SLIPPAGE_BPS
    volatile_slippage_bps: int = VOLATILE_SLIPPAGE_BPS

    # Fixed-point scale of the reward index.
    reward_scale: int = SCALE

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not isinstance(self.account, str) or not self.account:
            raise ValueError("account must be a non-empty string")
        if not isinstance(self.registry_id, str) or not self.registry_id:
            raise ValueError("registry_id must be a non-empty string")
        for name, v in (
            ("stable_slippage_bps", self.stable_slippage_bps),
            ("volatile_slippage_bps", self.volatile_slippage_bps),
        ):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if not (0 <= v <= BPS_DENOM):
                raise ValueError(f"{name} must be in [0, {BPS_DENOM}]: {v}")
        if not isinstance(self.reward_scale, int) or isinstance(self.reward_scale, bool) or self.reward_scale <= 0:
            raise ValueError(f"reward_scale must be a positive int: {self.reward_scale!r}")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ValueError(f"unknown log_level: {self.log_level!r}")

    @property
    def slippage_policy(self) -> SlippagePolicy:
        return SlippagePolicy(stable_bps=self.stable_slippage_bps, volatile_bps=self.volatile_slippage_bps)


_CONFIG_KEYS = frozenset(f.name for f in fields(VaultConfig))


def config_from_mapping(raw: Mapping[str, Any]) -> VaultConfig:
    """Build a VaultConfig, rejecting unknown keys."""
    if not isinstance(raw, Mapping):
        raise TypeError("vault config must be a mapping")
    unknown = sorted(set(raw) - _CONFIG_KEYS)
    if unknown:
        raise ValueError(f"unknown vault config keys: {', '.join(unknown)}")
    return VaultConfig(**dict(raw))


def load_config(path: Union[str, Path]) -> VaultConfig:
    """
    Load a VaultConfig from YAML.

    The file may hold the keys at top level or under a `vault:` section.
    An empty file yields the defaults.
    """
    text = Path(path).read_text(encoding="utf-8")
    obj = yaml.safe_load(text)
    if obj is None:
        return VaultConfig()
    if not isinstance(obj, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    if "vault" in obj:
        section = obj["vault"]
        if section is None:
            return VaultConfig()
        if not isinstance(section, dict):
            raise ValueError(f"{path}: `vault` must be a mapping")
        obj = section
    return config_from_mapping(obj)


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """Install a basic stderr handler for scripts; libraries should not call this."""
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
