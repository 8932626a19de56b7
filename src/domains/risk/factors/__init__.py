"""Risk factor checks.

Exports ALL_FACTOR_CHECKS (one instance per RiskFactors field, in evaluation
order) and the individual check classes.
"""

from .amount import UnusualAmountCheck
from .base import FactorContext, RiskFactorCheck
from .location import UnusualDeviceCheck, UnusualLocationCheck
from .reputation import KnownBadActorCheck
from .timing import UnusualTimeCheck, local_hour
from .velocity import MultipleBookingsCheck, RecentFailuresCheck

ALL_FACTOR_CHECKS: list[RiskFactorCheck] = [
    UnusualAmountCheck(),
    UnusualTimeCheck(),
    UnusualLocationCheck(),
    UnusualDeviceCheck(),
    MultipleBookingsCheck(),
    RecentFailuresCheck(),
    KnownBadActorCheck(),
]

__all__ = [
    "ALL_FACTOR_CHECKS",
    "FactorContext",
    "KnownBadActorCheck",
    "MultipleBookingsCheck",
    "RecentFailuresCheck",
    "RiskFactorCheck",
    "UnusualAmountCheck",
    "UnusualDeviceCheck",
    "UnusualLocationCheck",
    "UnusualTimeCheck",
    "local_hour",
]
