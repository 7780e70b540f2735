"""
Showcase Service package for the portfolio application.

Keeps the public profile and project list available to the UI layer,
fresh when the portfolio API answers and from the persistent cache when it
does not (offline, failing API, slow network).

Structure:
- app.main: FastAPI app exposing resource state and refresh/connectivity routes.
- app.resources: Resource definitions and the reconciliation controller.
- app.adapters: HTTP clients for the portfolio API (public reads, admin writes).
- app.caching: Cache store over key-value storage and the freshness policy.
- app.storage: Key-value storage backends (memory, file, Redis).
- app.connectivity: Online/offline providers.
"""
