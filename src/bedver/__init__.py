"""Bed verification and transition engine for liquid-handling robots."""

from bedver.core.types import ScanSet, VerificationResult, VerificationStatus
from bedver.session.accumulator import ScanAccumulator, ScanSession, SessionState
from bedver.topology.loader import TopologyConfigError, load_topology
from bedver.transitions.executor import TransitionExecutor
from bedver.validation.robot import RobotValidator

__all__ = [
    "RobotValidator",
    "ScanAccumulator",
    "ScanSession",
    "ScanSet",
    "SessionState",
    "TopologyConfigError",
    "TransitionExecutor",
    "VerificationResult",
    "VerificationStatus",
    "load_topology",
]
