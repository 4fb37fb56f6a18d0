"""Authentication and authorization.

Learn: Requests are authenticated with a bearer JWT, taken from the
Authorization header or the `token` cookie. Two ways to obtain one:
1. Email/password → /auth/register or /auth/login
2. Google sign-in → the external profile is linked to a local user

Layers, leaf first: tokens (sign/verify), password (bcrypt), store
(persisted identities), linker (Google profile → user), gate (request →
identity), policy (identity vs. resource ownership and role).
"""
