from maprates.selection.entitlements import EntitlementSource, PremiumStatus
from maprates.selection.machine import SelectionMachine, HOME, DESTINATION

__all__ = ["EntitlementSource", "PremiumStatus", "SelectionMachine", "HOME", "DESTINATION"]
