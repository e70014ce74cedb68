# Package initializer for the twin optimiser panel.

"""
The `twin_optimiser` package builds the housekeeping booking grid and flags
bookings that are likely to use twin (two single) beds.

Modules:

- ``dates``: date window and timestamp helpers.
- ``models``: Pydantic models for NewBook records, location settings and the grid.
- ``classifier``: category, exclusion and ordering lookups per site.
- ``detector``: twin bed classification of a booking.
- ``grid``: grid assembly and room ordering.
- ``spans``: merging a room's row into display spans.
- ``locations``: per-location configuration file.
- ``newbook_client``: NewBook REST API client.
- ``render``: HTML table fragment.
- ``config``: application settings loaded from environment variables.
- ``main``: the FastAPI application definition.

"""
