"""
Service layer for wryte.

Views call these functions instead of touching models directly:

    from wryte.services import posts, discussion, reactions, identity

Every mutating function checks existence and ownership before writing
and runs inside a single transaction.
"""
