"""
Ride services.

    - store: ride record storage primitives
    - lifecycle: status state machine and mutations
    - views: read-only projections
    - pricing: trip estimates
"""
