"""Authentication and authorization.

Learn: One authentication path — email/password login issues a signed
JWT carrying {user id, role}. Every protected request then runs:

1. AuthenticationGate → bearer token → verified Identity
2. require_role → role gate (admin-only routes)
3. can_access → ownership gate (single-task routes)

The Identity is passed explicitly into services, never stored globally.
"""
