"""
Main entry point for Ana Hub.
"""

from .api import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn

    from .config import get_settings

    settings = get_settings()
    # The sync intake trusts loopback peers only, so bind to loopback unless
    # told otherwise.
    uvicorn.run(
        "ana_hub.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
