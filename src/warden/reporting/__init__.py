"""
Report production: version classification, change gating, host collection
and the reporting cycle that ties them to the crypter and transport.
"""

from warden.reporting.cycle import ReportingCycle
from warden.reporting.gate import ChangeGate, GateDecision, stable_hash
from warden.reporting.versions import VersionClassifier, VersionKind, VersionStatus

__all__ = [
    "ChangeGate",
    "GateDecision",
    "ReportingCycle",
    "VersionClassifier",
    "VersionKind",
    "VersionStatus",
    "stable_hash",
]
