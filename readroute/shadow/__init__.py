from .shadow_comparator import (
    ShadowComparator as ShadowComparator,
    ShadowStats as ShadowStats,
    structurally_equal as structurally_equal,
)
