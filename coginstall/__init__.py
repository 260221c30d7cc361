"""coginstall: GPU development host bootstrapper (state-recorded, idempotent).

Core design goals:
- Ordered, declarative steps with explicit preconditions
- Idempotent re-invocation as the recovery path
- All host access through a single Environment handle
- Centralized logging
"""

__all__ = []
