"""
Train search pipeline.

Responsibilities:
- Normalize user dates into a UTC day window and build the route/date filter.
- Map stored train documents from either schema into normalized offers.
- Run the lookup and attach a recommendation to the results.
"""
