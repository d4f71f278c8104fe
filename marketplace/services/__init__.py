"""
Domain services for the trade lifecycle and reputation engine.

Views call into these modules; they own every status change and every write
to a user's loyalty points.
"""
