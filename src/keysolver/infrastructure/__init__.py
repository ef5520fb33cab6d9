"""
Concrete implementations behind the keysolver domain contracts.

Subpackages
-----------
- `backend`: NumPy / CuPy numeric backends and `get_backend`.
- `encoding`: JSON-safe ndarray payloads.
- `io`: atomic JSON writes.
- `net`: network base class, registry, and the reference linear-regression net.
- `solver`: configuration, update rules, snapshots, and the `Solver` loop.
"""
