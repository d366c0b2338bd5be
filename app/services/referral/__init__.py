"""
Referral tree services package.

Contains modular services for the referral structures:
- chain_manager: Sponsor (upline) chain built at join
- binary_placement: Spillover search for binary tree slots
- volume_propagator: Side-aware volume propagation to binary ancestors
"""

from app.services.referral.binary_placement import (
    BinaryPlacement,
    BinaryPlacementFinder,
)
from app.services.referral.chain_manager import UplineChainManager
from app.services.referral.volume_propagator import (
    MAX_TREE_DEPTH,
    BinaryVolumePropagator,
)


__all__ = [
    "BinaryPlacement",
    "BinaryPlacementFinder",
    "BinaryVolumePropagator",
    "MAX_TREE_DEPTH",
    "UplineChainManager",
]
