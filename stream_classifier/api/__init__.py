"""FastAPI routes and endpoints.

Endpoints:
- GET /health: Service health status
- GET /ready: Readiness probe (reference data loaded)
- POST /api/streams/classify: Classify a three-subject combination
- GET /api/streams: List streams

Patterns applied:
- Dependency injection of the classifier and store via app.state
- Statelessness principle for horizontal scaling
"""
