"""Source tracking for source-deploy"""

from .store import ChangeOrigin, ChangeState, LocalTrackingStore
from .functions import (
    filter_conflicts_by_component_set,
    find_conflicts,
    local_deletes_not_in_set,
    tracking_setup,
    update_tracking,
)

__all__ = [
    'ChangeOrigin',
    'ChangeState',
    'LocalTrackingStore',
    'filter_conflicts_by_component_set',
    'find_conflicts',
    'local_deletes_not_in_set',
    'tracking_setup',
    'update_tracking',
]
