from __future__ import annotations

from typing import Optional

import pytest

from zapvault.integration.config import VaultConfig
from zapvault.integration.vault import VaultCollaborators, ZapVault
from zapvault.venue.simulated import SimulatedVenue

LP = "lp-provider"
DEPTH = 1_000_000_000

# Target pool and its reward token.
TARGET_TOKENS = ("USDC", "WETH")
REWARD = "VELO"


def build_venue() -> SimulatedVenue:
    """
    Venue with one target pool (vAMM USDC/WETH) gauged in VELO, plus routing pools:

    - sAMM DAI/USDC   (stable leg for DAI)
    - vAMM DAI/WETH   (volatile leg for DAI)
    - vAMM USDC/VELO, vAMM VELO/WETH (reward conversion)

    All pools are seeded 1:1 at DEPTH. XYZ has no pools at all.
    """
    venue = SimulatedVenue()
    for token in ("USDC", "WETH", "DAI", "VELO"):
        venue.mint(LP, token, 10 * DEPTH)
    venue.create_pool(LP, "USDC", "WETH", stable=False, amount_a=DEPTH, amount_b=DEPTH)
    venue.create_pool(LP, "DAI", "USDC", stable=True, amount_a=DEPTH, amount_b=DEPTH)
    venue.create_pool(LP, "DAI", "WETH", stable=False, amount_a=DEPTH, amount_b=DEPTH)
    venue.create_pool(LP, "USDC", "VELO", stable=False, amount_a=DEPTH, amount_b=DEPTH)
    venue.create_pool(LP, "VELO", "WETH", stable=False, amount_a=DEPTH, amount_b=DEPTH)
    venue.create_gauge(target_pool_id(venue), REWARD)
    return venue


def target_pool_id(venue: SimulatedVenue) -> str:
    pid = venue.registry.get_pool(*TARGET_TOKENS, False)
    assert pid is not None
    return pid


def build_vault(
    venue: SimulatedVenue,
    config: Optional[VaultConfig] = None,
    *,
    router=None,
) -> ZapVault:
    collaborators = VaultCollaborators(
        registry=venue.registry,
        router=router if router is not None else venue.router,
        gauges=venue.gauges(),
        transfer=venue,
        transactional=(venue,),
    )
    return ZapVault(collaborators, config if config is not None else VaultConfig())


@pytest.fixture
def venue() -> SimulatedVenue:
    return build_venue()


@pytest.fixture
def vault(venue: SimulatedVenue) -> ZapVault:
    return build_vault(venue)


@pytest.fixture
def pool_id(venue: SimulatedVenue) -> str:
    return target_pool_id(venue)
