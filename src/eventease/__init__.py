"""EventEase — event planning API.

Users create events, invite guests, and guests RSVP. Identity comes from
email/password registration or Google sign-in; every request carries a
bearer JWT (header or cookie) that is resolved to a live user record.
"""

__version__ = "0.1.0"
