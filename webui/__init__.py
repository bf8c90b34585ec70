"""Local web API that lets a browser frontend drive the client session."""
