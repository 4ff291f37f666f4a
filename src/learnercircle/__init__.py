"""Learner Circle — role-based learning platform backend.

Students, tutors, parents and admins sign in with email/password and
receive a JWT; every protected route runs an authenticator followed by
an explicit chain of access guards.
"""

__version__ = "0.1.0"
