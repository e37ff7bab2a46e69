# Package initializer for the PG room availability board.

"""
The `pg_availability` package contains all modules for the PG room availability board.

Modules:

- ``config``: application settings loaded from environment variables.
- ``errors``: exception types raised by the API client and the board.
- ``models``: Pydantic models for the backend wire shape and API responses.
- ``pg_client``: helpers for talking to the PG REST backend.
- ``availability``: bed/room classification, filtering and statistics.
- ``board``: fetch/refresh orchestration holding the current snapshot.
- ``main``: the FastAPI application definition.

"""
