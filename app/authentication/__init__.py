"""
Authentication application.

Provides the email-based User model and the closed ActorRole enumeration
used to authorize refund initiation and attribute ledger/audit entries.

Usage:
    from authentication.models import ActorRole, User
"""
