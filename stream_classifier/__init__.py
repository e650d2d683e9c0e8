"""Stream Classification Service.

Maps a student's three Advanced Level subject choices to the academic
stream they qualify for:
- Reference data store (subjects, streams, valid combinations)
- Order-independent combination lookup
- FastAPI endpoints and an async client
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
