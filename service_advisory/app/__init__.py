"""
Travel Advisory Gateway application package.

The gateway fronts an unreliable text-generation service and a public
country reference data service, combining them into a stable JSON contract:
- Reference data: fetched per request, failures are fatal (502)
- Advisory content: retried with linear jittered backoff, degrades to fallback
- Edge cache: Redis, long TTL for AI results, short TTL for fallbacks

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.adapters: HTTP clients for the upstream services.
- app.caching: Redis store and TTL-class cache manager.
- app.domain: Models, output normalization, CORS policy and composition.
"""
