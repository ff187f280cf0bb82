"""
django-tripops: Trip phase state machine with readiness and completion gates.

Provides:
- Trip: Guided tour moving through pre_trip -> before_departure -> during_trip -> post_trip
- score_risk: Pure risk scorer that can hard-block departure
- evaluate_readiness / evaluate_completion: Itemized gate evaluations
- start_trip / end_trip: Guarded, atomic phase transitions
- Crew/role authorization policy consulted by every mutation
"""

__version__ = "0.1.0"
