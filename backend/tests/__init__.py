"""
pytest suite for the Studio Booking API.

Test categories:
- Unit tests: pure helpers (phone, duplicate guard, status mapping, schedule parser)
- Integration tests: services against an in-memory SQLite session
- API tests: the FastAPI app through httpx ASGITransport with fake outbound clients
"""
