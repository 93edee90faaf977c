"""
Rankboard Test Suite
====================

Test Organization
-----------------
- tests/unit/          : Fast unit tests over MemoryRankStore and mocks
- tests/integration/   : Redis testcontainer tests (skipped without Docker)

Run only the fast suite with `pytest -m "not integration"`.
"""
