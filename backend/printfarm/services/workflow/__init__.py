"""
Item status workflow.

The engine lives in ``printfarm.services.workflow.engine``; it is not
re-exported here because the ORM models import the enums from this package.
"""

from printfarm.services.workflow.enums import ItemStatus, Platform
from printfarm.services.workflow.scope import EntireItem, PartSubset, ReprintScope

__all__ = ["EntireItem", "ItemStatus", "PartSubset", "Platform", "ReprintScope"]
