"""
GraphQL edge cache proxy service.

The proxy fronts a single upstream GraphQL indexer, enforcing:
- Request hygiene: size limits and pagination clamping
- Read-through caching keyed on canonicalized query + variables
- Single-flight coalescing of identical concurrent upstream calls
- Monotonic write-through for forced-fresh reads (meta-guard)

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.adapters: HTTP client for the upstream indexer.
- app.caching: Key derivation, TTL policy, store adapter, coalescing, meta-guard.
- app.domain: Per-request pipeline and response shaping.
"""
