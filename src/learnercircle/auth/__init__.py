"""Authentication and authorization.

Learn: One authentication path and a set of composable guards:
1. Users → email/password → bcrypt check → signed JWT (24h)
2. Every protected request → Bearer token → live user lookup → identity
3. Guards (role set, self-or-admin, batch access) run on that identity

The token only proves who the caller was when it was issued; the user
row is re-read on every request so deactivation takes effect at once.
"""
